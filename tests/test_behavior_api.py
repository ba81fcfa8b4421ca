"""Tests for the behaviour and storefront API endpoints."""

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from database.models import BehaviorEvent, ProactivePrompt, User
from database.repositories import BehaviorEventRepository
from database.session import session_scope
from llm.prompt_templates import PromptTemplates
from llm.providers.base import GenerationError
from tests.conftest import FakeReplyProvider, make_event


@pytest.fixture
def fetch(run):
    """Return all rows of a model."""
    def _fetch(model):
        async def _query():
            async with session_scope() as session:
                result = await session.execute(select(model))
                return list(result.scalars().all())
        return run(_query)
    return _fetch


def _classification_count(label):
    value = REGISTRY.get_sample_value("support_behavior_classifications_total", {"classification": label})
    return value or 0.0


def anxious_events(user_id):
    return [
        make_event(user_id, "cart_add", {"sku": "A"}),
        make_event(user_id, "cart_add", {"sku": "B"}),
        make_event(user_id, "cart_remove", {"sku": "A"}),
        make_event(user_id, "time_spent", {"ms": 200000}),
    ]


# ── Event log ─────────────────────────────────────────

def test_log_event(client, fetch):
    resp = client.post("/api/behavior/log", json={
        "userId": "user-1", "sessionId": "s-1", "eventType": "scroll_depth", "eventPayload": {"percent": 50},
    })
    assert resp.json() == {"ok": True}

    events = fetch(BehaviorEvent)
    assert len(events) == 1
    assert events[0].event_payload == {"percent": 50}
    assert events[0].session_id == "s-1"
    assert [u.id for u in fetch(User)] == ["user-1"]


def test_unknown_event_type_stored_as_is(client, fetch):
    client.post("/api/behavior/log", json={"userId": "user-1", "eventType": "wishlist_add"})
    assert [e.event_type for e in fetch(BehaviorEvent)] == ["wishlist_add"]


def test_log_failure_never_fails_caller(client, monkeypatch, fetch):
    async def broken(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(BehaviorEventRepository, "add", broken)
    resp = client.post("/api/behavior/log", json={"userId": "user-1", "eventType": "cart_add"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert fetch(BehaviorEvent) == []


@pytest.mark.parametrize("body", [
    {"eventType": "cart_add"},
    {"userId": "user-1"},
    {"userId": "", "eventType": "cart_add"},
])
def test_log_validation(client, body):
    resp = client.post("/api/behavior/log", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid body"


# ── Evaluation ────────────────────────────────────────

def test_no_classification_no_prompt(client, seed, fetch):
    seed(make_event("user-1", "time_spent", {"ms": 5000}))
    resp = client.post("/api/behavior/evaluate", json={"userId": "user-1"})
    assert resp.json() == {"shouldPrompt": False}
    assert fetch(ProactivePrompt) == []


def test_anxious_browser_prompt(client, seed, fetch, reply_provider):
    reply_provider.reply = "Weighing a few options? I can compare them for you."
    seed(*anxious_events("user-1"))

    data = client.post("/api/behavior/evaluate", json={"userId": "user-1", "sessionId": "s-9"}).json()

    assert data["shouldPrompt"] is True
    assert data["classification"] == "Anxious Browser"
    assert data["prompt"] == reply_provider.reply
    assert '"timeSpentMs": 200000' in reply_provider.calls[0]["user_message"]

    rows = fetch(ProactivePrompt)
    assert [(r.id, r.classification, r.session_id, r.engaged) for r in rows] == [
        (data["promptId"], "Anxious Browser", "s-9", None),
    ]


def test_hesitant_buyer(client, seed):
    seed(make_event("user-1", "scroll_depth", {"percent": 96}))
    data = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert data["classification"] == "Hesitant Buyer"


def test_events_outside_window_ignored(client, seed):
    seed(make_event("user-1", "scroll_depth", {"percent": 100}, minutes_ago=11))
    data = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert data == {"shouldPrompt": False}


def test_other_users_events_ignored(client, seed):
    seed(make_event("user-2", "scroll_depth", {"percent": 100}))
    data = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert data == {"shouldPrompt": False}


def test_forced_greeting_skips_model(client, reply_provider, fetch):
    data = client.post("/api/behavior/evaluate", json={"userId": "user-1", "force": True}).json()

    assert data["shouldPrompt"] is True
    assert data["classification"] == "Proactive Greeting"
    assert data["prompt"] == PromptTemplates.PROACTIVE_GREETING
    assert reply_provider.calls == []
    assert len(fetch(ProactivePrompt)) == 1


@pytest.mark.parametrize("reply_provider", [FakeReplyProvider(error=GenerationError("rate limited"))])
def test_model_failure_uses_label_template(client, seed, reply_provider):
    seed(make_event("user-1", "scroll_depth", {"percent": 99}))
    data = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert data["prompt"] == PromptTemplates.PROACTIVE_FALLBACKS["Hesitant Buyer"]


def test_each_evaluation_creates_a_prompt(client, seed, fetch):
    seed(*anxious_events("user-1"))
    first = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    second = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert first["promptId"] != second["promptId"]
    assert len(fetch(ProactivePrompt)) == 2


@pytest.mark.parametrize("settings", [{"prompt_dedupe": True}], indirect=True)
def test_dedupe_reuses_prompt(client, seed, fetch):
    seed(*anxious_events("user-1"))

    first = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    second = client.post("/api/behavior/evaluate", json={"userId": "user-1"}).json()
    assert first["promptId"] == second["promptId"]
    assert len(fetch(ProactivePrompt)) == 1


@pytest.mark.parametrize("settings", [{"prompt_dedupe": True}], indirect=True)
def test_reused_prompt_not_counted_again(client, seed):
    seed(*anxious_events("user-1"))
    before = _classification_count("Anxious Browser")

    client.post("/api/behavior/evaluate", json={"userId": "user-1"})
    client.post("/api/behavior/evaluate", json={"userId": "user-1"})

    assert _classification_count("Anxious Browser") - before == 1


# ── Engagement ────────────────────────────────────────

def test_engagement_recorded(client, fetch):
    prompt_id = client.post("/api/behavior/evaluate", json={"userId": "user-1", "force": True}).json()["promptId"]

    assert client.post("/api/behavior/engagement", json={"promptId": prompt_id, "engaged": True}).json() == {"ok": True}
    assert fetch(ProactivePrompt)[0].engaged is True

    client.post("/api/behavior/engagement", json={"promptId": prompt_id, "engaged": False})
    assert fetch(ProactivePrompt)[0].engaged is False


def test_engagement_unknown_prompt_is_ok(client):
    resp = client.post("/api/behavior/engagement", json={"promptId": "missing", "engaged": True})
    assert resp.json() == {"ok": True}


def test_engagement_validation(client):
    assert client.post("/api/behavior/engagement", json={"promptId": "p"}).status_code == 400


# ── Storefront ────────────────────────────────────────

def test_identify_assigns_cookie(client, fetch):
    resp = client.get("/api/identify")
    user_id = resp.json()["userId"]
    assert resp.cookies.get("uid") == user_id
    assert [u.id for u in fetch(User)] == [user_id]

    client.cookies = {"uid": user_id}
    again = client.get("/api/identify")
    assert again.json() == {"userId": user_id}


def test_cart_add_logs_event(client, fetch):
    assert client.post("/api/cart/add", json={"userId": "user-1", "sku": "SKU-1"}).json() == {"ok": True}
    events = fetch(BehaviorEvent)
    assert [(e.event_type, e.event_payload) for e in events] == [("cart_add", {"sku": "SKU-1"})]


def test_synthetic_order_status(client):
    data = client.get("/api/order/ORDER-42").json()
    assert data["id"] == "ORDER-42"
    assert data["status"] == "in_transit"
    assert data["delivery_eta"]
