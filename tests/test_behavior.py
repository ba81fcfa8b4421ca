"""Tests for behaviour classification."""

from types import SimpleNamespace

from behavior import BehaviorClassifier, Classification


def event(event_type, payload=None):
    return SimpleNamespace(event_type=event_type, event_payload=payload)


class TestBehaviorClassifier:
    def setup_method(self):
        self.classifier = BehaviorClassifier()

    def test_anxious_browser(self):
        events = [
            event("cart_add", {"sku": "A"}),
            event("cart_add", {"sku": "B"}),
            event("cart_remove", {"sku": "A"}),
            event("time_spent", {"ms": 120000}),
            event("time_spent", {"ms": 80000}),
        ]
        summary = self.classifier.summarize(events)
        assert summary.adds == 2
        assert summary.removes == 1
        assert summary.time_spent_ms == 200000
        assert summary.classification == Classification.ANXIOUS_BROWSER

    def test_cart_churn_without_dwell_is_not_anxious(self):
        events = [event("cart_add"), event("cart_remove"), event("cart_add"), event("time_spent", {"ms": 1000})]
        assert self.classifier.summarize(events).classification is None

    def test_hesitant_buyer(self):
        events = [event("scroll_depth", {"percent": 40}), event("scroll_depth", {"percent": 96})]
        summary = self.classifier.summarize(events)
        assert summary.scrolled_bottom
        assert summary.classification == Classification.HESITANT_BUYER

    def test_bottom_scroll_with_cart_add_is_not_hesitant(self):
        events = [event("scroll_depth", {"percent": 99}), event("cart_add", {"sku": "A"})]
        assert self.classifier.summarize(events).classification is None

    def test_anxious_rule_wins_over_hesitant(self):
        events = [
            event("scroll_depth", {"percent": 100}),
            event("cart_remove"), event("cart_remove"), event("cart_remove"),
            event("time_spent", {"ms": 180000}),
        ]
        assert self.classifier.summarize(events).classification == Classification.ANXIOUS_BROWSER

    def test_no_events(self):
        summary = self.classifier.summarize([])
        assert summary.classification is None
        assert summary.to_dict() == {
            "adds": 0, "removes": 0, "timeSpentMs": 0, "scrolledBottom": False, "classification": None,
        }

    def test_malformed_payloads_count_as_zero(self):
        events = [
            event("time_spent", {"ms": "abc"}),
            event("time_spent", None),
            event("time_spent", {"ms": "2500"}),
            event("scroll_depth", "96"),
            event("scroll_depth", {"percent": True}),
        ]
        summary = self.classifier.summarize(events)
        assert summary.time_spent_ms == 2500
        assert not summary.scrolled_bottom

    def test_non_finite_values_count_as_zero(self):
        churn = [event("cart_add"), event("cart_add"), event("cart_remove")]
        events = churn + [
            event("time_spent", {"ms": float("nan")}),
            event("time_spent", {"ms": 200000}),
        ]
        summary = self.classifier.summarize(events)
        assert summary.time_spent_ms == 200000
        assert summary.classification == Classification.ANXIOUS_BROWSER

        summary = self.classifier.summarize(churn + [event("time_spent", {"ms": "inf"})])
        assert summary.time_spent_ms == 0
        assert summary.classification is None

        summary = self.classifier.summarize([event("scroll_depth", {"percent": "Infinity"})])
        assert not summary.scrolled_bottom

    def test_unknown_event_types_ignored(self):
        events = [event("size_guide_open"), event("exit_intent"), event("wishlist_add")]
        summary = self.classifier.summarize(events)
        assert (summary.adds, summary.removes, summary.time_spent_ms) == (0, 0, 0)
