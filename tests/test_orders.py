"""Tests for order reference extraction, resolution and recommendations."""

import asyncio

import httpx
import pytest

from database.session import close_db, init_db, session_scope
from orders import (
    OrderContextResolver, OrderReferenceExtractor, OrderStatusClient,
    RecommendationEngine, extract_order_reference,
)
from orders.recommendations import (
    BUNDLE_DISCOUNT, EXTENDED_WARRANTY, FAST_CHARGER, PROTECTION_PLAN,
)
from tests.conftest import FakeOrderStatus, make_order


class TestOrderReferenceExtractor:
    def test_first_match_is_normalized(self):
        assert extract_order_reference("I have order-4521 and order123") == "ORDER-4521"

    def test_missing_separator_gets_hyphen(self):
        assert extract_order_reference("where is order123?") == "ORDER-123"

    def test_underscore_separator(self):
        assert extract_order_reference("Order_0099 please") == "ORDER-0099"

    def test_two_digit_suffix_never_matches(self):
        assert extract_order_reference("order12 is late") is None

    def test_no_reference(self):
        assert extract_order_reference("my parcel is late") is None
        assert extract_order_reference("") is None
        assert extract_order_reference(None) is None

    def test_custom_pattern(self):
        import re
        extractor = OrderReferenceExtractor(re.compile(r"\b(INV)[-_]?(\d{4,})\b", re.IGNORECASE))
        assert extractor.extract("invoice inv5555") == "INV-5555"
        assert extractor.extract("order-1234") is None


class TestRecommendationEngine:
    def setup_method(self):
        self.engine = RecommendationEngine()

    def test_no_context_gets_generic_warranty(self):
        assert self.engine.recommend(None) == [EXTENDED_WARRANTY]

    def test_status_rules(self):
        assert self.engine.recommend({"id": "ORDER-9", "status": "in_transit"}) == [PROTECTION_PLAN]
        assert self.engine.recommend({"id": "ORDER-9", "status": "delivered"}) == [BUNDLE_DISCOUNT]

    def test_missing_status_counts_as_processing(self):
        assert self.engine.recommend({"id": "ORDER-9"}) == [FAST_CHARGER]

    def test_rules_accumulate_in_order(self):
        recs = self.engine.recommend({"id": "ORDER-100200300", "status": "delivered"})
        assert recs == [PROTECTION_PLAN, FAST_CHARGER, BUNDLE_DISCOUNT]

    def test_unmatched_context_falls_back(self):
        assert self.engine.recommend({"id": "ORDER-9", "status": "cancelled"}) == [EXTENDED_WARRANTY]

    def test_deterministic_and_capped(self):
        ctx = {"id": "ORDER-100200300", "status": "in_transit"}
        first = self.engine.recommend(ctx)
        assert first == self.engine.recommend(dict(ctx))
        assert len(first) <= RecommendationEngine.MAX_RESULTS

    def test_format(self):
        text = RecommendationEngine.format([PROTECTION_PLAN])
        assert text.startswith("\n\nYou might also like:\n")
        assert "• Premium Protection Plan - " in text
        assert RecommendationEngine.format([]) == ""


def _resolve(resolver, order_id, message="", rows=()):
    async def _go():
        await init_db("sqlite+aiosqlite:///:memory:")
        try:
            async with session_scope() as session:
                session.add_all(list(rows))
            return await resolver.resolve(order_id, message)
        finally:
            await close_db()
    return asyncio.run(_go())


class TestOrderContextResolver:
    def test_store_hit_skips_fallback(self):
        fallback = FakeOrderStatus({"ORDER-1001": {"id": "ORDER-1001", "status": "processing"}})
        resolver = OrderContextResolver(status_provider=fallback)

        result = _resolve(resolver, "ORDER-1001", rows=[make_order("ORDER-1001", status="delivered")])

        assert result.resolved
        assert result.source == "store"
        assert result.context["status"] == "delivered"
        assert fallback.calls == []

    def test_fallback_used_on_store_miss(self):
        fallback = FakeOrderStatus({"ORDER-777": {"id": "ORDER-777", "status": "in_transit"}})
        result = _resolve(OrderContextResolver(status_provider=fallback), "ORDER-777")

        assert result.source == "fallback"
        assert result.attempts == ["store", "fallback"]
        assert result.explicit

    def test_reference_extracted_from_message(self):
        fallback = FakeOrderStatus()
        result = _resolve(
            OrderContextResolver(status_provider=fallback), None, "is order-4521 shipped?",
            rows=[make_order("ORDER-4521")],
        )
        assert result.reference == "ORDER-4521"
        assert not result.explicit
        assert result.resolved

    def test_no_reference_no_lookup(self):
        fallback = FakeOrderStatus()
        result = _resolve(OrderContextResolver(status_provider=fallback), None, "hello")
        assert result.reference is None
        assert not result.resolved
        assert fallback.calls == []

    def test_fallback_error_is_a_miss(self):
        class Broken:
            async def fetch_order(self, order_id):
                raise RuntimeError("boom")

        result = _resolve(OrderContextResolver(status_provider=Broken()), "ORDER-555")
        assert not result.resolved


class TestOrderStatusClient:
    def _client(self, handler):
        return OrderStatusClient("http://orders.test/api", transport=httpx.MockTransport(handler))

    def test_success(self):
        def handler(request):
            assert request.url.path == "/api/order/ORDER-1"
            return httpx.Response(200, json={"status": "in_transit", "delivery_eta": "2026-10-22"})

        data = asyncio.run(self._client(handler).fetch_order("ORDER-1"))
        assert data == {"id": "ORDER-1", "status": "in_transit", "delivery_eta": "2026-10-22"}

    @pytest.mark.parametrize("response", [
        httpx.Response(404, json={"error": "missing"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=["not", "an", "object"]),
    ])
    def test_unusable_responses(self, response):
        data = asyncio.run(self._client(lambda request: response).fetch_order("ORDER-1"))
        assert data is None

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert asyncio.run(self._client(handler).fetch_order("ORDER-1")) is None
