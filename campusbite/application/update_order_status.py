import logging
from datetime import datetime
from typing import Callable, Sequence

from campusbite.domain.models import Identity, Order, OrderStatus, PaymentStatus, utc_now
from campusbite.domain.exceptions import (
    InvalidTransitionError, OrderNotFoundError, PaymentCollectionRequiredError
)
from campusbite.application.access import require_staff
from campusbite.application.interfaces import StatusListener

logger = logging.getLogger(__name__)


async def _apply_transition(uow, order: Order, target: OrderStatus, now: datetime) -> Order:
    if not order.can_transition_to(target):
        raise InvalidTransitionError(order.status, target)

    # Compare-and-set: a concurrent writer that got there first wins
    changed = await uow.orders.compare_and_set_status(order.id, order.status, target, now)
    if not changed:
        current = await uow.orders.get_by_id(order.id)
        raise InvalidTransitionError(current.status if current else order.status, target)

    await uow.outbox.create(
        event_type="order.status_changed",
        event_data={
            "order_id": order.id,
            "user_id": order.user_id,
            "previous_status": order.status.value,
            "status": target.value
        },
        order_id=order.id
    )
    return order.model_copy(update={"status": target, "updated_at": now})


async def _notify(listeners: Sequence[StatusListener], order: Order) -> None:
    for listener in listeners:
        try:
            await listener.on_status_changed(order, order.status)
        except Exception as e:
            logger.error(f"Status listener {type(listener).__name__} failed for {order.id}: {e}", exc_info=True)


class UpdateOrderStatusUseCase:
    def __init__(
        self,
        unit_of_work,
        listeners: Sequence[StatusListener] = (),
        clock: Callable[[], datetime] = utc_now
    ):
        self._uow = unit_of_work
        self._listeners = list(listeners)
        self._clock = clock

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    async def __call__(self, identity: Identity, order_id: str, new_status: OrderStatus) -> Order:
        require_staff(identity)

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")

            if order.can_transition_to(new_status) and order.awaits_cash_collection(new_status):
                logger.info(f"Order {order_id} held: cash collection not confirmed")
                raise PaymentCollectionRequiredError(order_id)

            updated = await _apply_transition(uow, order, new_status, self._clock())
            await uow.commit()

        logger.info(f"Order {order_id}: {order.status.value} -> {new_status.value}")
        await _notify(self._listeners, updated)
        return updated


class ConfirmCashCollectedUseCase:
    """Records the cash handoff and completes the order in one step"""

    def __init__(
        self,
        unit_of_work,
        listeners: Sequence[StatusListener] = (),
        clock: Callable[[], datetime] = utc_now
    ):
        self._uow = unit_of_work
        self._listeners = list(listeners)
        self._clock = clock

    async def __call__(self, identity: Identity, order_id: str) -> Order:
        require_staff(identity)
        now = self._clock()

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")
            if not order.can_transition_to(OrderStatus.COMPLETED):
                raise InvalidTransitionError(order.status, OrderStatus.COMPLETED)

            if order.payment_status != PaymentStatus.COMPLETED:
                await uow.orders.update_payment_status(order_id, PaymentStatus.COMPLETED, now)
                await uow.outbox.create(
                    event_type="order.payment_completed",
                    event_data={"order_id": order_id, "user_id": order.user_id},
                    order_id=order_id
                )
                order = order.model_copy(update={"payment_status": PaymentStatus.COMPLETED})

            updated = await _apply_transition(uow, order, OrderStatus.COMPLETED, now)
            await uow.commit()

        logger.info(f"Cash collected for order {order_id}, order completed")
        await _notify(self._listeners, updated)
        return updated
