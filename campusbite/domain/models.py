from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY_FOR_PICKUP = "Ready for Pickup"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value):
        # "Ready" is a legacy display synonym
        if isinstance(value, str) and value.strip().lower() == "ready":
            return cls.READY_FOR_PICKUP
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class PaymentMethod(str, Enum):
    CASH_ON_PICKUP = "Cash on Pickup"
    ONLINE = "Online Payment"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.strip().lower() == "cash on delivery":
            return cls.CASH_ON_PICKUP
        return None

    @property
    def is_online(self) -> bool:
        return self == PaymentMethod.ONLINE


class PaymentVerdict(str, Enum):
    AUTHORIZED = "authorized"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


class Identity(BaseModel):
    """Caller identity as furnished by the identity provider"""
    user_id: str
    email: str = ""
    role: Role = Role.STUDENT

    @property
    def is_staff(self) -> bool:
        return self.role == Role.ADMIN


class MenuItem(BaseModel):
    """Catalog entry, mutated only by staff"""
    id: str
    name: str
    description: str = ""
    price: int
    category: str
    image: Optional[str] = None
    is_available: bool = True
    preparation_time: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CartLine(BaseModel):
    """Pending quantity of one menu item. name/price/image are display only"""
    user_id: str
    item_id: str
    quantity: int
    name: Optional[str] = None
    price: Optional[int] = None
    image: Optional[str] = None
    added_at: Optional[datetime] = None


class OrderLine(BaseModel):
    """Frozen copy of an item taken when the order was created"""
    item_id: str
    name: str
    price: int
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


class Order(BaseModel):
    id: str
    user_id: str
    customer_email: str = ""
    items: List[OrderLine]
    total_amount: int
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_reference: Optional[str] = None
    idempotency_key: Optional[str] = None
    required_by: datetime
    created_at: datetime
    updated_at: datetime

    @property
    def short_id(self) -> str:
        return self.id[-6:]

    @staticmethod
    def total_of(items: List[OrderLine]) -> int:
        return sum(line.subtotal for line in items)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def awaits_cash_collection(self, target: OrderStatus) -> bool:
        """Cash orders are only completed once the handoff has been confirmed"""
        return (
            target == OrderStatus.COMPLETED
            and self.payment_method == PaymentMethod.CASH_ON_PICKUP
            and self.payment_status != PaymentStatus.COMPLETED
        )


class CartView(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)
    item_count: int = 0
    display_total: int = 0
