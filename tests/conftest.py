"""Shared fixtures for the order support chatbot tests."""

import asyncio
import os
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

# Ensure we use test/mock settings
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from api.main import create_app
from api.services import Services
from config.settings import Settings
from database.models import BehaviorEvent, Order, Product, utcnow
from database.session import session_scope


class FakeReplyProvider:
    """Records calls; replies, raises or stalls on demand."""

    def __init__(self, reply="I completely understand. Your order is on its way.", error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, system_policy, context, user_message):
        self.calls.append({"system_policy": system_policy, "context": context, "user_message": user_message})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class FakeOrderStatus:
    def __init__(self, orders=None):
        self.orders = orders or {}
        self.calls = []

    async def fetch_order(self, order_id):
        self.calls.append(order_id)
        return self.orders.get(order_id)


class FakeEmbedder:
    def __init__(self, vector=None, error=None, delay=0.0):
        self.vector = vector or [1.0, 0.0, 0.0]
        self.error = error
        self.delay = delay

    async def embed_text(self, text):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.vector


@pytest.fixture
def settings(request):
    """Test settings; parametrize indirectly with a dict of overrides."""
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "openai_api_key": None,
        "pinecone_api_key": "",
        "generation_timeout_seconds": 0.5,
        "embedding_timeout_seconds": 0.5,
        "log_level": "WARNING",
    }
    values.update(getattr(request, "param", {}))
    return Settings(**values)


@pytest.fixture
def reply_provider():
    return FakeReplyProvider()


@pytest.fixture
def order_status():
    return FakeOrderStatus()


@pytest.fixture
def embedder():
    return None


@pytest.fixture
def services(reply_provider, order_status, embedder):
    return Services(reply_provider=reply_provider, embedder=embedder, order_status_provider=order_status)


@pytest.fixture
def client(settings, services):
    """FastAPI test client with lifespan (database + services) running."""
    app = create_app(settings=settings, services=services)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def run(client):
    """Run a coroutine function on the app's event loop."""
    def _run(fn, *args):
        return client.portal.call(fn, *args)
    return _run


@pytest.fixture
def seed(run):
    """Insert ORM rows into the test database."""
    def _seed(*rows):
        async def _insert():
            async with session_scope() as session:
                session.add_all(rows)
        run(_insert)
    return _seed


def make_order(order_id, user_id=None, status="in_transit", delivery_eta="2026-10-25", minutes_ago=0):
    return Order(
        id=order_id,
        user_id=user_id,
        status=status,
        delivery_eta=delivery_eta,
        created_at=utcnow() - timedelta(minutes=minutes_ago),
    )


def make_event(user_id, event_type, payload=None, minutes_ago=0):
    return BehaviorEvent(
        user_id=user_id,
        event_type=event_type,
        event_payload=payload,
        created_at=utcnow() - timedelta(minutes=minutes_ago),
    )


def make_product(sku, title, price_cents=1999, minutes_ago=0):
    return Product(
        sku=sku,
        title=title,
        blurb=f"{title} blurb",
        price_cents=price_cents,
        created_at=utcnow() - timedelta(minutes=minutes_ago),
    )
