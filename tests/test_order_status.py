from datetime import timedelta

import pytest

from campusbite.application.get_order import GetOrderUseCase, ListAllOrdersUseCase, ListMyOrdersUseCase
from campusbite.application.manage_cart import AddToCartUseCase
from campusbite.application.notify_status import NotificationDispatcher
from campusbite.application.push_tokens import RegisterPushTokenUseCase
from campusbite.application.update_order_status import ConfirmCashCollectedUseCase, UpdateOrderStatusUseCase
from campusbite.domain.exceptions import (
    InvalidTransitionError, OrderNotFoundError, PaymentCollectionRequiredError, PermissionDeniedError
)
from campusbite.domain.models import OrderStatus, PaymentMethod, PaymentStatus

from conftest import NOW, OTHER_STUDENT, STAFF, STUDENT, FakePushTransport


@pytest.fixture
async def cash_order(uow, biryani, chai, place_order):
    add = AddToCartUseCase(uow)
    await add(STUDENT, biryani.id, 1)
    await add(STUDENT, chai.id, 2)
    return await place_order()


@pytest.fixture
async def online_order(uow, biryani, place_order):
    await AddToCartUseCase(uow)(STUDENT, biryani.id, 1)
    return await place_order(payment_method=PaymentMethod.ONLINE, payment_reference="pay_1")


@pytest.fixture
def update_status(uow, push):
    return UpdateOrderStatusUseCase(uow, listeners=[NotificationDispatcher(uow, push)], clock=lambda: NOW)


@pytest.fixture
def confirm_cash(uow, push):
    return ConfirmCashCollectedUseCase(uow, listeners=[NotificationDispatcher(uow, push)], clock=lambda: NOW)


async def test_full_lifecycle_of_cash_order(uow, cash_order, update_status, confirm_cash):
    await update_status(STAFF, cash_order.id, OrderStatus.PREPARING)
    await update_status(STAFF, cash_order.id, OrderStatus.READY_FOR_PICKUP)

    with pytest.raises(PaymentCollectionRequiredError):
        await update_status(STAFF, cash_order.id, OrderStatus.COMPLETED)
    held = await GetOrderUseCase(uow)(STAFF, cash_order.id)
    assert held.status == OrderStatus.READY_FOR_PICKUP
    assert held.payment_status == PaymentStatus.PENDING

    completed = await confirm_cash(STAFF, cash_order.id)

    assert completed.status == OrderStatus.COMPLETED
    assert completed.payment_status == PaymentStatus.COMPLETED
    stored = await GetOrderUseCase(uow)(STUDENT, cash_order.id)
    assert stored.status == OrderStatus.COMPLETED
    assert stored.payment_status == PaymentStatus.COMPLETED
    assert stored.total_amount == 23000


async def test_preparing_can_be_skipped(cash_order, update_status):
    order = await update_status(STAFF, cash_order.id, OrderStatus.READY_FOR_PICKUP)

    assert order.status == OrderStatus.READY_FOR_PICKUP


async def test_online_order_completes_without_cash_step(online_order, update_status):
    await update_status(STAFF, online_order.id, OrderStatus.READY_FOR_PICKUP)

    order = await update_status(STAFF, online_order.id, OrderStatus.COMPLETED)

    assert order.status == OrderStatus.COMPLETED


@pytest.mark.parametrize("target", list(OrderStatus))
async def test_completed_is_terminal(online_order, update_status, target):
    await update_status(STAFF, online_order.id, OrderStatus.READY_FOR_PICKUP)
    await update_status(STAFF, online_order.id, OrderStatus.COMPLETED)

    with pytest.raises(InvalidTransitionError):
        await update_status(STAFF, online_order.id, target)


@pytest.mark.parametrize("target", list(OrderStatus))
async def test_cancelled_is_terminal(cash_order, update_status, target):
    await update_status(STAFF, cash_order.id, OrderStatus.CANCELLED)

    with pytest.raises(InvalidTransitionError):
        await update_status(STAFF, cash_order.id, target)


async def test_no_backward_transitions(uow, cash_order, update_status):
    await update_status(STAFF, cash_order.id, OrderStatus.READY_FOR_PICKUP)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await update_status(STAFF, cash_order.id, OrderStatus.PREPARING)

    assert exc_info.value.current == OrderStatus.READY_FOR_PICKUP
    assert exc_info.value.requested == OrderStatus.PREPARING


async def test_pending_cannot_jump_to_completed(cash_order, update_status):
    with pytest.raises(InvalidTransitionError):
        await update_status(STAFF, cash_order.id, OrderStatus.COMPLETED)


async def test_confirm_cash_requires_ready_order(uow, cash_order, confirm_cash):
    with pytest.raises(InvalidTransitionError):
        await confirm_cash(STAFF, cash_order.id)

    stored = await GetOrderUseCase(uow)(STAFF, cash_order.id)
    assert stored.status == OrderStatus.PENDING
    assert stored.payment_status == PaymentStatus.PENDING


async def test_students_cannot_drive_status(cash_order, update_status, confirm_cash):
    with pytest.raises(PermissionDeniedError):
        await update_status(STUDENT, cash_order.id, OrderStatus.PREPARING)
    with pytest.raises(PermissionDeniedError):
        await confirm_cash(STUDENT, cash_order.id)


async def test_unknown_order(update_status):
    with pytest.raises(OrderNotFoundError):
        await update_status(STAFF, "missing", OrderStatus.PREPARING)


async def test_stale_compare_and_set_is_refused(uow, cash_order):
    async with uow() as session:
        assert await session.orders.compare_and_set_status(
            cash_order.id, OrderStatus.PENDING, OrderStatus.PREPARING, NOW
        )
        assert not await session.orders.compare_and_set_status(
            cash_order.id, OrderStatus.PENDING, OrderStatus.CANCELLED, NOW
        )
        await session.commit()

    stored = await GetOrderUseCase(uow)(STAFF, cash_order.id)
    assert stored.status == OrderStatus.PREPARING


async def test_every_accepted_transition_is_pushed(uow, cash_order, update_status, confirm_cash, push):
    await RegisterPushTokenUseCase(uow)(STUDENT, "device-a")

    await update_status(STAFF, cash_order.id, OrderStatus.PREPARING)
    await update_status(STAFF, cash_order.id, OrderStatus.READY_FOR_PICKUP)
    with pytest.raises(PaymentCollectionRequiredError):
        await update_status(STAFF, cash_order.id, OrderStatus.COMPLETED)
    await confirm_cash(STAFF, cash_order.id)

    assert [message["body"] for message in push.sent] == [
        "Your order is now Preparing",
        "Your order is now Ready for Pickup",
        "Your order is now Completed",
    ]


async def test_push_failure_does_not_undo_transition(uow, cash_order):
    await RegisterPushTokenUseCase(uow)(STUDENT, "device-a")
    broken = FakePushTransport(fail=True)
    use_case = UpdateOrderStatusUseCase(uow, listeners=[NotificationDispatcher(uow, broken)])

    order = await use_case(STAFF, cash_order.id, OrderStatus.PREPARING)

    assert order.status == OrderStatus.PREPARING
    stored = await GetOrderUseCase(uow)(STAFF, cash_order.id)
    assert stored.status == OrderStatus.PREPARING


async def test_registered_listener_is_called(cash_order, update_status):
    seen = []

    class Recorder:
        async def on_status_changed(self, order, new_status):
            seen.append((order.id, new_status))

    update_status.add_listener(Recorder())
    await update_status(STAFF, cash_order.id, OrderStatus.CANCELLED)

    assert seen == [(cash_order.id, OrderStatus.CANCELLED)]


async def test_transitions_are_recorded_in_outbox(uow, cash_order, update_status):
    await update_status(STAFF, cash_order.id, OrderStatus.PREPARING)

    async with uow() as session:
        events = await session.outbox.get_pending()
    status_events = [e for e in events if e["event_type"] == "order.status_changed"]
    assert len(status_events) == 1
    assert status_events[0]["event_data"]["previous_status"] == "Pending"
    assert status_events[0]["event_data"]["status"] == "Preparing"


async def test_order_queries_respect_ownership(uow, cash_order):
    assert [o.id for o in await ListMyOrdersUseCase(uow)(STUDENT)] == [cash_order.id]
    assert await ListMyOrdersUseCase(uow)(OTHER_STUDENT) == []

    with pytest.raises(PermissionDeniedError):
        await GetOrderUseCase(uow)(OTHER_STUDENT, cash_order.id)
    with pytest.raises(PermissionDeniedError):
        await ListAllOrdersUseCase(uow)(STUDENT)

    assert [o.id for o in await ListAllOrdersUseCase(uow)(STAFF, OrderStatus.PENDING)] == [cash_order.id]
    assert await ListAllOrdersUseCase(uow)(STAFF, OrderStatus.COMPLETED) == []


async def test_default_clock_stamps_utc(uow, cash_order):
    order = await UpdateOrderStatusUseCase(uow)(STAFF, cash_order.id, OrderStatus.PREPARING)

    assert order.updated_at.utcoffset() == timedelta(0)
