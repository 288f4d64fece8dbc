import logging
import json

from campusbite.application.interfaces import EventPublisher

logger = logging.getLogger(__name__)


class ProcessOutboxEventsUseCase:
    def __init__(self, unit_of_work, publisher: EventPublisher):
        self._uow = unit_of_work
        self._publisher = publisher

    async def __call__(self, limit: int = 20) -> int:
        """Publishes pending outbox events. Returns the number published"""
        published = 0

        async with self._uow() as uow:
            pending = await uow.outbox.get_pending(limit=limit)

            for event in pending:
                event_data = event["event_data"]
                if isinstance(event_data, str):
                    event_data = json.loads(event_data)

                success = await self._publisher.publish(
                    event_type=event["event_type"],
                    key=event["order_id"],
                    payload={"event_id": event["id"], **event_data}
                )
                if success:
                    await uow.outbox.mark_as_published(event["id"])
                    published += 1
                else:
                    # Keep ordering per order: stop at the first failure, retry next round
                    logger.warning(f"Outbox event {event['id']} not published, will retry")
                    break

            await uow.commit()

        if published:
            logger.info(f"Published {published} outbox event(s)")
        return published
