from sqlalchemy import (
    Table, Column, String, Integer, Boolean, Enum, DateTime, JSON, MetaData, Text, UniqueConstraint
)
from sqlalchemy.sql import func

from campusbite.domain.models import OrderStatus, PaymentMethod, PaymentStatus

metadata = MetaData()


menu_items_tbl = Table(
    "menu_items",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("price", Integer, nullable=False),
    Column("category", String, nullable=False, index=True),
    Column("image", String, nullable=True),
    Column("is_available", Boolean, nullable=False, default=True),
    Column("preparation_time", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


# One row per (user, menu item); quantity is incremented in place
cart_lines_tbl = Table(
    "cart_lines",
    metadata,
    Column("user_id", String, primary_key=True),
    Column("item_id", String, primary_key=True),
    Column("quantity", Integer, nullable=False),
    Column("name", String, nullable=True),
    Column("price", Integer, nullable=True),
    Column("image", String, nullable=True),
    Column("added_at", DateTime(timezone=True), server_default=func.now())
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("customer_email", String, nullable=False, default=""),
    Column("items", JSON, nullable=False),
    Column("total_amount", Integer, nullable=False),
    Column("status", Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING),
    Column("payment_method", Enum(PaymentMethod), nullable=False),
    Column("payment_status", Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING),
    Column("payment_reference", String, nullable=True),
    Column("idempotency_key", String, nullable=True),
    Column("required_by", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key")
)


push_tokens_tbl = Table(
    "push_tokens",
    metadata,
    Column("user_id", String, primary_key=True),
    Column("token", String, primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


outbox_events_tbl = Table(
    "outbox_events",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_type", String, nullable=False),
    Column("event_data", JSON, nullable=False),
    Column("order_id", String, nullable=False),
    Column("status", String, default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)
