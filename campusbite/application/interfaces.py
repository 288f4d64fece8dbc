from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from campusbite.domain.models import (
    CartLine, MenuItem, Order, OrderLine, OrderStatus, PaymentStatus, PaymentVerdict
)


class MenuRepository(ABC):
    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[MenuItem]:
        pass

    @abstractmethod
    async def list_items(self, category: Optional[str] = None, available_only: bool = False) -> List[MenuItem]:
        pass

    @abstractmethod
    async def create(self, item: MenuItem) -> None:
        pass

    @abstractmethod
    async def update(self, item_id: str, values: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    async def delete(self, item_id: str) -> bool:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def add_line(self, user_id: str, item: MenuItem, quantity_delta: int) -> None:
        pass

    @abstractmethod
    async def set_quantity(self, user_id: str, item_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def remove_line(self, user_id: str, item_id: str) -> None:
        pass

    @abstractmethod
    async def list_lines(self, user_id: str) -> List[CartLine]:
        pass

    @abstractmethod
    async def remove_lines(self, user_id: str, lines: Sequence[OrderLine]) -> None:
        """Takes the ordered quantities out of the cart, leaving anything added since"""
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> int:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, user_id: str, key: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list_all(self, status: Optional[OrderStatus] = None) -> List[Order]:
        pass

    @abstractmethod
    async def compare_and_set_status(
        self, order_id: str, expected: OrderStatus, new_status: OrderStatus, updated_at: datetime
    ) -> bool:
        pass

    @abstractmethod
    async def update_payment_status(self, order_id: str, payment_status: PaymentStatus, updated_at: datetime) -> None:
        pass


class PushTokenRepository(ABC):
    @abstractmethod
    async def add(self, user_id: str, token: str) -> None:
        pass

    @abstractmethod
    async def remove(self, user_id: str, token: str) -> None:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[str]:
        pass


class OutboxRepository(ABC):
    @abstractmethod
    async def create(self, event_type: str, event_data: dict, order_id: str) -> str:
        pass

    @abstractmethod
    async def get_pending(self, limit: int = 10) -> List[dict]:
        pass

    @abstractmethod
    async def mark_as_published(self, event_id: str) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def menu(self) -> MenuRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def push_tokens(self) -> PushTokenRepository:
        pass

    @property
    @abstractmethod
    def outbox(self) -> OutboxRepository:
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class PaymentAuthorizer(ABC):
    @abstractmethod
    async def verify(self, payment_reference: str) -> PaymentVerdict:
        pass


class PushTransport(ABC):
    @abstractmethod
    async def send_multicast(
        self, tokens: Sequence[str], title: str, body: str, data: Dict[str, str]
    ) -> List[dict]:
        """Returns one {"token", "success", "error"} result per token"""
        pass


class StatusListener(ABC):
    @abstractmethod
    async def on_status_changed(self, order: Order, new_status: OrderStatus) -> None:
        pass


class EventPublisher(ABC):
    @abstractmethod
    async def publish(self, event_type: str, key: str, payload: dict) -> bool:
        pass
