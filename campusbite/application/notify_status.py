import logging

from campusbite.domain.models import Order, OrderStatus
from campusbite.application.interfaces import PushTransport, StatusListener

logger = logging.getLogger(__name__)

ORDERS_LINK = "/student/orders"


class NotificationDispatcher(StatusListener):
    """Best-effort push of order status changes to every device of the user"""

    def __init__(self, unit_of_work, transport: PushTransport):
        self._uow = unit_of_work
        self._transport = transport

    async def on_status_changed(self, order: Order, new_status: OrderStatus) -> None:
        await self.notify(order.user_id, order.id, new_status)

    async def notify(self, user_id: str, order_id: str, new_status: OrderStatus) -> None:
        try:
            async with self._uow() as uow:
                tokens = await uow.push_tokens.list_for_user(user_id)
            if not tokens:
                logger.info(f"No push tokens for user {user_id}")
                return

            title = f"Order #{order_id[-6:]} Update"
            body = f"Your order is now {new_status.value}"
            results = await self._transport.send_multicast(
                tokens,
                title,
                body,
                {"order_id": order_id, "status": new_status.value, "link": ORDERS_LINK}
            )
            failed = [r for r in results if not r.get("success")]
            if failed:
                logger.warning(f"Push for order {order_id}: {len(failed)} of {len(tokens)} deliveries failed")
            else:
                logger.info(f"Push sent for order {order_id} to {len(tokens)} device(s)")

        except Exception as e:
            logger.error(f"Push notification for order {order_id} failed: {e}", exc_info=True)
