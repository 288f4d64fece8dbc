"""
Shared fixtures: a real SQLAlchemy engine on in-memory SQLite, the unit of
work over it, and fakes for the payment gateway and push transport.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from campusbite.application.interfaces import EventPublisher, PaymentAuthorizer, PushTransport
from campusbite.application.place_order import PlaceOrderDTO, PlaceOrderUseCase
from campusbite.domain.models import Identity, MenuItem, PaymentMethod, PaymentVerdict, Role
from campusbite.infrastructure.db_schema import metadata
from campusbite.infrastructure.unit_of_work import UnitOfWork

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

STUDENT = Identity(user_id="student-1", email="ravi@hitam.org", role=Role.STUDENT)
OTHER_STUDENT = Identity(user_id="student-2", email="anita@hitam.org", role=Role.STUDENT)
STAFF = Identity(user_id="admin-1", email="admin@hitam.org", role=Role.ADMIN)


class FakePaymentAuthorizer(PaymentAuthorizer):
    def __init__(self, verdict=PaymentVerdict.AUTHORIZED, delay: float = 0.0):
        self.verdict = verdict
        self.delay = delay
        self.calls = []

    async def verify(self, payment_reference):
        self.calls.append(payment_reference)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.verdict


class FakePushTransport(PushTransport):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_multicast(self, tokens, title, body, data):
        if self.fail:
            raise RuntimeError("push gateway down")
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        return [{"token": token, "success": True, "error": None} for token in tokens]


class FakePublisher(EventPublisher):
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.published = []

    async def publish(self, event_type, key, payload):
        if self.succeed:
            self.published.append((event_type, key, payload))
        return self.succeed


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow(engine):
    return UnitOfWork(async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession))


@pytest.fixture
def payments():
    return FakePaymentAuthorizer()


@pytest.fixture
def push():
    return FakePushTransport()


@pytest.fixture
def add_menu_item(uow):
    async def _add(name: str, price: int, category: str = "Main Course", is_available: bool = True) -> MenuItem:
        item = MenuItem(
            id=str(uuid.uuid4()),
            name=name,
            price=price,
            category=category,
            is_available=is_available,
            created_at=NOW,
            updated_at=NOW,
        )
        async with uow() as session:
            await session.menu.create(item)
            await session.commit()
        return item

    return _add


@pytest.fixture
async def biryani(add_menu_item):
    return await add_menu_item("Chicken Biryani", 18000)


@pytest.fixture
async def chai(add_menu_item):
    return await add_menu_item("Masala Chai", 2500, category="Beverages")


@pytest.fixture
def place_order(uow, payments):
    use_case = PlaceOrderUseCase(uow, payments, clock=lambda: NOW)

    async def _place(identity=STUDENT, payment_method=PaymentMethod.CASH_ON_PICKUP, **kwargs):
        kwargs.setdefault("required_by", NOW + timedelta(minutes=45))
        return await use_case(PlaceOrderDTO(identity=identity, payment_method=payment_method, **kwargs))

    return _place


async def cart_lines(uow, identity=STUDENT):
    async with uow() as session:
        return await session.carts.list_lines(identity.user_id)


async def all_orders(uow):
    async with uow() as session:
        return await session.orders.list_all()
