from typing import List, Optional

from campusbite.domain.models import Identity, Order, OrderStatus
from campusbite.domain.exceptions import OrderNotFoundError
from campusbite.application.access import require_owner_or_staff, require_staff


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")
            require_owner_or_staff(identity, order)
            return order


class ListMyOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity) -> List[Order]:
        async with self._uow() as uow:
            return await uow.orders.list_for_user(identity.user_id)


class ListAllOrdersUseCase:
    """Staff dashboard feed, newest first"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, status: Optional[OrderStatus] = None) -> List[Order]:
        require_staff(identity)
        async with self._uow() as uow:
            return await uow.orders.list_all(status)
