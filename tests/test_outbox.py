from campusbite.application.manage_cart import AddToCartUseCase
from campusbite.application.process_outbox import ProcessOutboxEventsUseCase
from campusbite.application.update_order_status import UpdateOrderStatusUseCase
from campusbite.domain.models import OrderStatus

from conftest import NOW, STAFF, STUDENT, FakePublisher


async def pending_events(uow):
    async with uow() as session:
        return await session.outbox.get_pending(limit=100)


async def test_events_are_published_once(uow, biryani, place_order):
    await AddToCartUseCase(uow)(STUDENT, biryani.id, 1)
    order = await place_order()
    await UpdateOrderStatusUseCase(uow, clock=lambda: NOW)(STAFF, order.id, OrderStatus.PREPARING)
    publisher = FakePublisher()
    process = ProcessOutboxEventsUseCase(uow, publisher)

    assert await process() == 2
    assert await process() == 0

    assert {event_type for event_type, _, _ in publisher.published} == {"order.placed", "order.status_changed"}
    for _, key, payload in publisher.published:
        assert key == order.id
        assert payload["order_id"] == order.id
        assert "event_id" in payload
    assert await pending_events(uow) == []


async def test_failed_publish_keeps_event_pending(uow, biryani, place_order):
    await AddToCartUseCase(uow)(STUDENT, biryani.id, 1)
    await place_order()

    assert await ProcessOutboxEventsUseCase(uow, FakePublisher(succeed=False))() == 0
    assert len(await pending_events(uow)) == 1

    retry = FakePublisher()
    assert await ProcessOutboxEventsUseCase(uow, retry)() == 1
    assert len(retry.published) == 1


async def test_nothing_to_publish(uow):
    assert await ProcessOutboxEventsUseCase(uow, FakePublisher())() == 0
