"""Pytest fixtures for storefront tests."""

import asyncio
import os
import random

# Settings are read at import time, so point them at a throwaway database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from storefront.api.deps import get_event_publisher, get_payment_simulator
from storefront.database import Base, SessionLocal, engine, get_db
from storefront.main import app
from storefront.models import Product, User, UserRole
from storefront.publishers.event_publisher import EventPublisher
from storefront.schemas.order import OrderCreate
from storefront.schemas.payment import ProcessPaymentRequest
from storefront.security import create_access_token
from storefront.services.order_service import OrderService
from storefront.services.payment_simulator import PaymentSimulator
from storefront.services.settlement_service import SettlementService

SHIPPING_ADDRESS = {
    "street": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zipCode": "62701",
    "country": "US",
}

SUCCESS_CARD = "4242424242424242"
# Luhn-valid visa numbers ending in 8 and 9, declined by the simulator
DECLINED_CARD = "4000000000000028"
DECLINED_CARD_9 = "4000000000000069"


class RecordingSleep:
    """Async sleep stand-in that returns immediately and remembers the delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class RecordingPublisher(EventPublisher):
    """Publisher that keeps events in memory instead of talking to RabbitMQ."""

    def __init__(self):
        super().__init__(enabled=False)
        self.events = []

    def publish(self, event_type, routing_key, data):
        self.events.append((event_type, routing_key, data))
        return True


@pytest.fixture
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def simulator(sleeper):
    return PaymentSimulator(rng=random.Random(1234), sleep=sleeper)


@pytest.fixture
def publisher():
    return EventPublisher(enabled=False)


@pytest.fixture
def recorder():
    return RecordingPublisher()


@pytest.fixture
def client(db, simulator, publisher):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_simulator] = lambda: simulator
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(name=None, role=UserRole.USER):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        user = User(name=name.title(), email=f"{name}@example.com", role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def admin(make_user):
    return make_user("admin", role=UserRole.ADMIN)


@pytest.fixture
def auth_headers():
    def _headers(user):
        role = user.role.value if hasattr(user.role, "value") else user.role
        return {"Authorization": f"Bearer {create_access_token(user.id, role)}"}

    return _headers


@pytest.fixture
def make_product(db):
    def _make(name="Headphones", price=50.0, stock=10, image_url="/img/product.jpg"):
        product = Product(name=name, price=price, stock=stock, image_url=image_url, category="Electronics")
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


def order_request(*lines, payment_method="credit_card"):
    """Build an OrderCreate from (product, quantity) pairs."""
    return OrderCreate.model_validate({
        "orderItems": [{"product": product.id, "quantity": quantity} for product, quantity in lines],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": payment_method,
    })


def payment_request(order, card_number=SUCCESS_CARD, expiry_month="12", expiry_year="2030", cvv="123"):
    return ProcessPaymentRequest(
        order_id=order.id,
        card_number=card_number,
        expiry_month=expiry_month,
        expiry_year=expiry_year,
        cvv=cvv,
        cardholder_name="Card Holder",
    )


@pytest.fixture
def make_order(db, publisher, make_product):
    """Order worth ``items_price`` placed by ``user``, one line of one unit."""

    def _make(user, items_price=100.0, quantity=1, stock=10):
        product = make_product(price=items_price / quantity, stock=stock)
        return OrderService(db, event_publisher=publisher).create_order(user, order_request((product, quantity)))

    return _make


@pytest.fixture
def settlement(db, simulator, publisher):
    return SettlementService(db, simulator=simulator, event_publisher=publisher)


@pytest.fixture
def paid_order(alice, make_order, settlement):
    """Alice's order of 100.00 settled with a successful card."""
    order = make_order(alice)
    result = asyncio.run(settlement.process_payment(alice, payment_request(order)))
    assert result.success
    return result
