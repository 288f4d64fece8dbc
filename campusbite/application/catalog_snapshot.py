import logging
from typing import List

from campusbite.domain.models import CartLine, OrderLine
from campusbite.application.interfaces import MenuRepository

logger = logging.getLogger(__name__)

FALLBACK_ITEM_NAME = "Item"


class CatalogSnapshotResolver:
    """Freezes name and price of every cart line against the live catalog.

    A line whose menu item has been deleted keeps the cart's own snapshot
    instead of failing the checkout. Whether an item flagged unavailable is
    dropped is decided by ``exclude_unavailable``; by default the flag is
    ignored.
    """

    def __init__(self, exclude_unavailable: bool = False):
        self._exclude_unavailable = exclude_unavailable

    async def resolve(self, menu: MenuRepository, lines: List[CartLine]) -> List[OrderLine]:
        frozen = []
        for line in lines:
            item = await menu.get_item(line.item_id)

            if item is None:
                logger.info(f"Menu item {line.item_id} not found, using cart snapshot")
                frozen.append(OrderLine(
                    item_id=line.item_id,
                    name=line.name or FALLBACK_ITEM_NAME,
                    price=line.price or 0,
                    quantity=line.quantity
                ))
                continue

            if self._exclude_unavailable and not item.is_available:
                logger.info(f"Menu item {item.id} is unavailable, excluded from order")
                continue

            frozen.append(OrderLine(
                item_id=item.id,
                name=item.name or line.name or FALLBACK_ITEM_NAME,
                price=item.price,
                quantity=line.quantity
            ))
        return frozen
