import asyncio
import logging

from campusbite.database import AsyncSessionLocal
from campusbite.infrastructure.unit_of_work import UnitOfWork
from campusbite.infrastructure.kafka_producer import KafkaProducerClient
from campusbite.application.process_outbox import ProcessOutboxEventsUseCase
from campusbite.config import settings

logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def outbox_worker(poll_interval: float = 2.0):
    """Publishes order events from the outbox to Kafka"""
    logger.info("Outbox worker started")

    kafka_producer = KafkaProducerClient(settings.KAFKA_BOOTSTRAP_SERVERS, settings.KAFKA_ORDER_EVENTS_TOPIC)
    await kafka_producer.start()
    use_case = ProcessOutboxEventsUseCase(
        unit_of_work=UnitOfWork(AsyncSessionLocal),
        publisher=kafka_producer
    )

    try:
        while True:
            try:
                published = await use_case(limit=20)
                if not published:
                    await asyncio.sleep(poll_interval)

            except Exception as e:
                logger.error(f"Outbox worker error: {e}", exc_info=True)
                await asyncio.sleep(10)
    finally:
        await kafka_producer.stop()


def main():
    asyncio.run(outbox_worker())


if __name__ == "__main__":
    main()
