import logging

from campusbite.domain.models import CartView, Identity
from campusbite.domain.exceptions import InvalidQuantityError, MenuItemNotFoundError

logger = logging.getLogger(__name__)


class AddToCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str, quantity: int = 1) -> CartView:
        if quantity <= 0:
            raise InvalidQuantityError("Quantity to add must be positive")

        async with self._uow() as uow:
            item = await uow.menu.get_item(item_id)
            if not item:
                raise MenuItemNotFoundError(f"Menu item {item_id} not found")
            await uow.carts.add_line(identity.user_id, item, quantity)
            await uow.commit()
            logger.info(f"Added {quantity} x {item_id} to cart of {identity.user_id}")
            return _to_view(await uow.carts.list_lines(identity.user_id))


class UpdateCartQuantityUseCase:
    """Replaces the quantity of a line; zero or less removes it"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str, quantity: int) -> CartView:
        async with self._uow() as uow:
            await uow.carts.set_quantity(identity.user_id, item_id, quantity)
            await uow.commit()
            return _to_view(await uow.carts.list_lines(identity.user_id))


class RemoveFromCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str) -> CartView:
        async with self._uow() as uow:
            await uow.carts.remove_line(identity.user_id, item_id)
            await uow.commit()
            return _to_view(await uow.carts.list_lines(identity.user_id))


class ClearCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity) -> int:
        async with self._uow() as uow:
            removed = await uow.carts.clear(identity.user_id)
            await uow.commit()
            return removed


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity) -> CartView:
        async with self._uow() as uow:
            return _to_view(await uow.carts.list_lines(identity.user_id))


def _to_view(lines) -> CartView:
    # Display figures only, checkout re-prices from the catalog
    return CartView(
        lines=lines,
        item_count=sum(line.quantity for line in lines),
        display_total=sum((line.price or 0) * line.quantity for line in lines)
    )
