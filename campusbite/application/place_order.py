import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union
from pydantic import BaseModel

from campusbite.domain.models import (
    Identity, Order, OrderStatus, PaymentMethod, PaymentStatus, PaymentVerdict, utc_now
)
from campusbite.domain.exceptions import (
    DuplicateOrderError, EmptyCartError, InvalidRequiredTimeError, NoValidItemsError,
    PaymentVerificationFailedError
)
from campusbite.application.catalog_snapshot import CatalogSnapshotResolver
from campusbite.application.interfaces import PaymentAuthorizer

logger = logging.getLogger(__name__)


class PlaceOrderDTO(BaseModel):
    identity: Identity
    required_by: Union[datetime, str]
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    idempotency_key: Optional[str] = None


class PlaceOrderUseCase:
    """Turns the caller's cart into an order.

    Order insert, removal of the ordered quantities from the cart and the
    outbox event share one transaction, so either the order exists and its
    lines are gone from the cart, or nothing changed. Cart lines added while
    payment was being verified, and lines the resolver left out, stay in the
    cart.
    """

    def __init__(
        self,
        unit_of_work,
        payment_authorizer: PaymentAuthorizer,
        resolver: Optional[CatalogSnapshotResolver] = None,
        min_lead: timedelta = timedelta(minutes=30),
        max_lead: timedelta = timedelta(hours=24),
        payment_timeout: float = 15.0,
        clock: Callable[[], datetime] = utc_now
    ):
        self._uow = unit_of_work
        self._payments = payment_authorizer
        self._resolver = resolver or CatalogSnapshotResolver()
        self._min_lead = min_lead
        self._max_lead = max_lead
        self._payment_timeout = payment_timeout
        self._clock = clock

    async def __call__(self, dto: PlaceOrderDTO) -> Order:
        user_id = dto.identity.user_id
        logger.info(f"Checkout for user {user_id}, payment method {dto.payment_method.value}")

        now = self._clock()
        required_by = self._parse_required_by(dto.required_by, now)

        # 1. Idempotency, cart and price snapshot
        async with self._uow() as uow:
            if dto.idempotency_key:
                existing = await uow.orders.get_by_idempotency_key(user_id, dto.idempotency_key)
                if existing:
                    logger.info(f"Order already exists for key {dto.idempotency_key}: {existing.id}")
                    return existing

            lines = await uow.carts.list_lines(user_id)
            if not lines:
                raise EmptyCartError()

            items = await self._resolver.resolve(uow.menu, lines)
            if not items:
                raise NoValidItemsError()

        # 2. Total
        total = Order.total_of(items)

        # 3. Payment
        payment_status = PaymentStatus.PENDING
        payment_reference = None
        if dto.payment_method.is_online:
            await self._verify_payment(dto.payment_reference)
            payment_status = PaymentStatus.COMPLETED
            payment_reference = dto.payment_reference

        # 4. Order + removal of the ordered lines from the cart
        order = Order(
            id=str(uuid.uuid4()),
            user_id=user_id,
            customer_email=dto.identity.email,
            items=items,
            total_amount=total,
            status=OrderStatus.PENDING,
            payment_method=dto.payment_method,
            payment_status=payment_status,
            payment_reference=payment_reference,
            idempotency_key=dto.idempotency_key,
            required_by=required_by,
            created_at=now,
            updated_at=now
        )
        try:
            await self._persist(order)
        except DuplicateOrderError:
            # A concurrent checkout with the same key got there first
            async with self._uow() as uow:
                existing = await uow.orders.get_by_idempotency_key(user_id, dto.idempotency_key)
            if not existing:
                raise
            logger.info(f"Order already exists for key {dto.idempotency_key}: {existing.id}")
            return existing

        logger.info(f"Order created: {order.id}, total {total}")
        return order

    async def _persist(self, order: Order) -> None:
        user_id = order.user_id
        async with self._uow() as uow:
            await uow.orders.create(order)
            await uow.carts.remove_lines(user_id, order.items)
            await uow.outbox.create(
                event_type="order.placed",
                event_data={
                    "order_id": order.id,
                    "user_id": user_id,
                    "total_amount": order.total_amount,
                    "status": order.status.value,
                    "payment_method": order.payment_method.value,
                    "payment_status": order.payment_status.value
                },
                order_id=order.id
            )
            await uow.commit()

    def _parse_required_by(self, value: Union[datetime, str], now: datetime) -> datetime:
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            except ValueError:
                raise InvalidRequiredTimeError(f"required_by is not a valid timestamp: {value!r}")
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)

        if value < now + self._min_lead:
            raise InvalidRequiredTimeError(
                f"required_by must be at least {int(self._min_lead.total_seconds() // 60)} minutes from now"
            )
        if value > now + self._max_lead:
            raise InvalidRequiredTimeError(
                f"required_by must be within {int(self._max_lead.total_seconds() // 3600)} hours from now"
            )
        return value

    async def _verify_payment(self, payment_reference: Optional[str]) -> None:
        if not payment_reference:
            raise PaymentVerificationFailedError("Payment reference is required for online payment")

        try:
            verdict = await asyncio.wait_for(
                self._payments.verify(payment_reference), timeout=self._payment_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Payment verification timed out for {payment_reference}")
            raise PaymentVerificationFailedError("Payment verification timed out")
        except Exception as e:
            logger.error(f"Payment verification error for {payment_reference}: {e}")
            raise PaymentVerificationFailedError("Payment could not be verified") from e

        if verdict != PaymentVerdict.AUTHORIZED:
            logger.warning(f"Payment {payment_reference} not authorized: {verdict.value}")
            raise PaymentVerificationFailedError(f"Payment was not authorized ({verdict.value})")
