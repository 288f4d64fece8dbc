import uuid
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campusbite.domain.models import (
    CartLine, MenuItem, Order, OrderLine, OrderStatus, PaymentStatus
)
from campusbite.domain.exceptions import DuplicateOrderError
from campusbite.infrastructure.db_schema import (
    menu_items_tbl, cart_lines_tbl, orders_tbl, push_tokens_tbl, outbox_events_tbl
)
from campusbite.application.interfaces import (
    MenuRepository, CartRepository, OrderRepository, PushTokenRepository, OutboxRepository
)


def _dialect_insert(session: AsyncSession):
    """INSERT construct with ON CONFLICT support for the bound dialect"""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


class SQLAlchemyMenuRepository(MenuRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_item(self, item_id: str) -> Optional[MenuItem]:
        result = await self._session.execute(
            select(menu_items_tbl).where(menu_items_tbl.c.id == item_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list_items(self, category: Optional[str] = None, available_only: bool = False) -> List[MenuItem]:
        stmt = select(menu_items_tbl).order_by(menu_items_tbl.c.category, menu_items_tbl.c.name)
        if category:
            stmt = stmt.where(menu_items_tbl.c.category == category)
        if available_only:
            stmt = stmt.where(menu_items_tbl.c.is_available.is_(True))
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, item: MenuItem) -> None:
        stmt = insert(menu_items_tbl).values(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            category=item.category,
            image=item.image,
            is_available=item.is_available,
            preparation_time=item.preparation_time,
            created_at=item.created_at,
            updated_at=item.updated_at
        )
        await self._session.execute(stmt)

    async def update(self, item_id: str, values: Dict[str, Any]) -> bool:
        stmt = (
            update(menu_items_tbl)
            .where(menu_items_tbl.c.id == item_id)
            .values(**values, updated_at=datetime.now(timezone.utc))
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete(self, item_id: str) -> bool:
        result = await self._session.execute(
            delete(menu_items_tbl).where(menu_items_tbl.c.id == item_id)
        )
        return result.rowcount > 0

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(menu_items_tbl))
        return result.scalar_one()

    def _to_domain(self, row) -> MenuItem:
        return MenuItem(
            id=row.id,
            name=row.name,
            description=row.description or "",
            price=row.price,
            category=row.category,
            image=row.image,
            is_available=row.is_available,
            preparation_time=row.preparation_time,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def add_line(self, user_id: str, item: MenuItem, quantity_delta: int) -> None:
        # The increment runs inside the database so concurrent adds are not lost
        stmt = _dialect_insert(self._session)(cart_lines_tbl).values(
            user_id=user_id,
            item_id=item.id,
            quantity=quantity_delta,
            name=item.name,
            price=item.price,
            image=item.image,
            added_at=datetime.now(timezone.utc)
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[cart_lines_tbl.c.user_id, cart_lines_tbl.c.item_id],
            set_={
                "quantity": cart_lines_tbl.c.quantity + stmt.excluded.quantity,
                "name": stmt.excluded.name,
                "price": stmt.excluded.price,
                "image": stmt.excluded.image,
            }
        )
        await self._session.execute(stmt)

    async def set_quantity(self, user_id: str, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            await self.remove_line(user_id, item_id)
            return
        stmt = (
            update(cart_lines_tbl)
            .where(cart_lines_tbl.c.user_id == user_id, cart_lines_tbl.c.item_id == item_id)
            .values(quantity=quantity)
        )
        await self._session.execute(stmt)

    async def remove_line(self, user_id: str, item_id: str) -> None:
        await self._session.execute(
            delete(cart_lines_tbl).where(
                cart_lines_tbl.c.user_id == user_id,
                cart_lines_tbl.c.item_id == item_id
            )
        )

    async def list_lines(self, user_id: str) -> List[CartLine]:
        result = await self._session.execute(
            select(cart_lines_tbl)
            .where(cart_lines_tbl.c.user_id == user_id)
            .order_by(cart_lines_tbl.c.added_at.asc(), cart_lines_tbl.c.item_id)
        )
        return [
            CartLine(
                user_id=row.user_id,
                item_id=row.item_id,
                quantity=row.quantity,
                name=row.name,
                price=row.price,
                image=row.image,
                added_at=row.added_at
            )
            for row in result.fetchall()
        ]

    async def remove_lines(self, user_id: str, lines: Sequence[OrderLine]) -> None:
        # Decrement rather than delete: quantity added after the snapshot stays in the cart
        for line in lines:
            await self._session.execute(
                update(cart_lines_tbl)
                .where(cart_lines_tbl.c.user_id == user_id, cart_lines_tbl.c.item_id == line.item_id)
                .values(quantity=cart_lines_tbl.c.quantity - line.quantity)
            )
        await self._session.execute(
            delete(cart_lines_tbl).where(
                cart_lines_tbl.c.user_id == user_id,
                cart_lines_tbl.c.quantity <= 0
            )
        )

    async def clear(self, user_id: str) -> int:
        result = await self._session.execute(
            delete(cart_lines_tbl).where(cart_lines_tbl.c.user_id == user_id)
        )
        return result.rowcount


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_idempotency_key(self, user_id: str, key: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(
                orders_tbl.c.user_id == user_id,
                orders_tbl.c.idempotency_key == key
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            user_id=order.user_id,
            customer_email=order.customer_email,
            items=[line.model_dump() for line in order.items],
            total_amount=order.total_amount,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            payment_reference=order.payment_reference,
            idempotency_key=order.idempotency_key,
            required_by=order.required_by,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError as e:
            if order.idempotency_key and "idempotency_key" in str(e.orig):
                raise DuplicateOrderError(order.user_id, order.idempotency_key) from e
            raise

    async def list_for_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self, status: Optional[OrderStatus] = None) -> List[Order]:
        stmt = select(orders_tbl).order_by(orders_tbl.c.created_at.desc())
        if status is not None:
            stmt = stmt.where(orders_tbl.c.status == status)
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.fetchall()]

    async def compare_and_set_status(
        self, order_id: str, expected: OrderStatus, new_status: OrderStatus, updated_at: datetime
    ) -> bool:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id, orders_tbl.c.status == expected)
            .values(status=new_status, updated_at=updated_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def update_payment_status(self, order_id: str, payment_status: PaymentStatus, updated_at: datetime) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(payment_status=payment_status, updated_at=updated_at)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Order:
        """DB row -> Domain"""
        return Order(
            id=row.id,
            user_id=row.user_id,
            customer_email=row.customer_email or "",
            items=[OrderLine(**line) for line in row.items],
            total_amount=row.total_amount,
            status=OrderStatus(row.status),
            payment_method=row.payment_method,
            payment_status=row.payment_status,
            payment_reference=row.payment_reference,
            idempotency_key=row.idempotency_key,
            required_by=row.required_by,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyPushTokenRepository(PushTokenRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, user_id: str, token: str) -> None:
        stmt = _dialect_insert(self._session)(push_tokens_tbl).values(
            user_id=user_id,
            token=token,
            created_at=datetime.now(timezone.utc)
        )
        await self._session.execute(stmt.on_conflict_do_nothing())

    async def remove(self, user_id: str, token: str) -> None:
        await self._session.execute(
            delete(push_tokens_tbl).where(
                push_tokens_tbl.c.user_id == user_id,
                push_tokens_tbl.c.token == token
            )
        )

    async def list_for_user(self, user_id: str) -> List[str]:
        result = await self._session.execute(
            select(push_tokens_tbl.c.token).where(push_tokens_tbl.c.user_id == user_id)
        )
        return list(result.scalars().all())


class SQLAlchemyOutboxRepository(OutboxRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, event_type: str, event_data: dict, order_id: str) -> str:
        event_id = str(uuid.uuid4())
        stmt = insert(outbox_events_tbl).values(
            id=event_id,
            event_type=event_type,
            event_data=event_data,
            order_id=order_id,
            status="pending",
            created_at=datetime.now(timezone.utc)
        )
        await self._session.execute(stmt)
        return event_id

    async def get_pending(self, limit: int = 10) -> List[dict]:
        result = await self._session.execute(
            select(outbox_events_tbl)
            .where(outbox_events_tbl.c.status == "pending")
            .order_by(outbox_events_tbl.c.created_at.asc())
            .limit(limit)
        )
        rows = result.fetchall()

        return [
            {
                "id": row.id,
                "event_type": row.event_type,
                "event_data": row.event_data,
                "order_id": row.order_id
            }
            for row in rows
        ]

    async def mark_as_published(self, event_id: str) -> None:
        stmt = (
            update(outbox_events_tbl)
            .where(outbox_events_tbl.c.id == event_id)
            .values(status="published")
        )
        await self._session.execute(stmt)
