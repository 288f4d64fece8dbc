from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

from campusbite.domain.models import OrderStatus, PaymentMethod, PaymentStatus


class MenuItemResponse(BaseModel):
    id: str
    name: str
    description: str
    price: int
    category: str
    image: Optional[str] = None
    is_available: bool
    preparation_time: int

    @classmethod
    def from_domain(cls, item):
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            category=item.category,
            image=item.image,
            is_available=item.is_available,
            preparation_time=item.preparation_time
        )


class MenuItemCreateRequest(BaseModel):
    name: str
    description: str = ""
    price: int = Field(ge=0)
    category: str
    image: Optional[str] = None
    is_available: bool = True
    preparation_time: int = Field(default=0, ge=0)


class MenuItemUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(default=None, ge=0)


class AvailabilityRequest(BaseModel):
    is_available: bool


class AddToCartRequest(BaseModel):
    item_id: str
    quantity: int = 1


class UpdateQuantityRequest(BaseModel):
    quantity: int


class CartLineResponse(BaseModel):
    item_id: str
    quantity: int
    name: Optional[str] = None
    price: Optional[int] = None
    image: Optional[str] = None


class CartResponse(BaseModel):
    lines: List[CartLineResponse]
    item_count: int
    display_total: int

    @classmethod
    def from_domain(cls, view):
        return cls(
            lines=[
                CartLineResponse(
                    item_id=line.item_id,
                    quantity=line.quantity,
                    name=line.name,
                    price=line.price,
                    image=line.image
                )
                for line in view.lines
            ],
            item_count=view.item_count,
            display_total=view.display_total
        )


class CheckoutRequest(BaseModel):
    required_by: str
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_PICKUP
    payment_reference: Optional[str] = None
    idempotency_key: Optional[str] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def _legacy_payment_method(cls, value):
        return PaymentMethod(value) if isinstance(value, str) else value


class OrderLineResponse(BaseModel):
    item_id: str
    name: str
    price: int
    quantity: int


class OrderResponse(BaseModel):
    id: str
    user_id: str
    customer_email: str
    items: List[OrderLineResponse]
    total_amount: int
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    required_by: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            user_id=order.user_id,
            customer_email=order.customer_email,
            items=[OrderLineResponse(**line.model_dump()) for line in order.items],
            total_amount=order.total_amount,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            payment_reference=order.payment_reference,
            required_by=order.required_by,
            created_at=order.created_at,
            updated_at=order.updated_at
        )


class StatusUpdateRequest(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def _status_synonyms(cls, value):
        return OrderStatus(value) if isinstance(value, str) else value


class PushTokenRequest(BaseModel):
    token: str


class ErrorResponse(BaseModel):
    detail: str
