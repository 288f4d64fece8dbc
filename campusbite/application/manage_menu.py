import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel

from campusbite.domain.models import Identity, MenuItem
from campusbite.domain.exceptions import InvalidMenuItemError, MenuItemNotFoundError
from campusbite.application.access import require_staff

logger = logging.getLogger(__name__)


class MenuItemDTO(BaseModel):
    name: str
    description: str = ""
    price: int
    category: str
    image: Optional[str] = None
    is_available: bool = True
    preparation_time: int = 0


class MenuItemPatchDTO(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    category: Optional[str] = None
    image: Optional[str] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = None


def _validate(values: dict) -> None:
    if "name" in values and not (values["name"] or "").strip():
        raise InvalidMenuItemError("Name is required")
    if "category" in values and not (values["category"] or "").strip():
        raise InvalidMenuItemError("Category is required")
    if "price" in values and (values["price"] is None or values["price"] < 0):
        raise InvalidMenuItemError("Price must be a non-negative amount")
    if "preparation_time" in values and (values["preparation_time"] is None or values["preparation_time"] < 0):
        raise InvalidMenuItemError("Preparation time must be non-negative")


class ListMenuUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, category: Optional[str] = None, available_only: bool = False) -> List[MenuItem]:
        async with self._uow() as uow:
            return await uow.menu.list_items(category=category, available_only=available_only)


class GetMenuItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, item_id: str) -> MenuItem:
        async with self._uow() as uow:
            item = await uow.menu.get_item(item_id)
            if not item:
                raise MenuItemNotFoundError(f"Menu item {item_id} not found")
            return item


class CreateMenuItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, dto: MenuItemDTO) -> MenuItem:
        require_staff(identity)
        values = dto.model_dump()
        _validate(values)

        now = datetime.now(timezone.utc)
        item = MenuItem(id=str(uuid.uuid4()), created_at=now, updated_at=now, **values)
        async with self._uow() as uow:
            await uow.menu.create(item)
            await uow.commit()
        logger.info(f"Menu item created: {item.id} ({item.name})")
        return item


class UpdateMenuItemUseCase:
    """Partial update. Placed orders keep their own frozen prices"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str, dto: MenuItemPatchDTO) -> MenuItem:
        require_staff(identity)
        values = dto.model_dump(exclude_unset=True)
        _validate(values)

        async with self._uow() as uow:
            if values:
                found = await uow.menu.update(item_id, values)
            else:
                found = await uow.menu.get_item(item_id) is not None
            if not found:
                raise MenuItemNotFoundError(f"Menu item {item_id} not found")
            await uow.commit()
            item = await uow.menu.get_item(item_id)
        logger.info(f"Menu item updated: {item_id} {sorted(values)}")
        return item


class SetMenuItemAvailabilityUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str, is_available: bool) -> MenuItem:
        require_staff(identity)
        async with self._uow() as uow:
            if not await uow.menu.update(item_id, {"is_available": is_available}):
                raise MenuItemNotFoundError(f"Menu item {item_id} not found")
            await uow.commit()
            return await uow.menu.get_item(item_id)


class DeleteMenuItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, item_id: str) -> None:
        require_staff(identity)
        async with self._uow() as uow:
            if not await uow.menu.delete(item_id):
                raise MenuItemNotFoundError(f"Menu item {item_id} not found")
            await uow.commit()
        logger.info(f"Menu item deleted: {item_id}")
