"""
Behavioral Classifier for the order support chatbot.

Rule-based labelling of a user's recent storefront behaviour, used to
decide whether a proactive prompt is worth showing.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Known behaviour event types. Unknown types are stored but ignored."""
    TIME_SPENT = "time_spent"
    SCROLL_DEPTH = "scroll_depth"
    EXIT_INTENT = "exit_intent"
    CART_ADD = "cart_add"
    CART_REMOVE = "cart_remove"
    SIZE_GUIDE_OPEN = "size_guide_open"


class Classification(Enum):
    """Behaviour labels."""
    ANXIOUS_BROWSER = "Anxious Browser"
    HESITANT_BUYER = "Hesitant Buyer"
    PROACTIVE_GREETING = "Proactive Greeting"  # Forced evaluation, no rule matched


def _number(payload: Any, key: str) -> float:
    """Numeric payload field; anything missing, non-numeric or non-finite counts as 0."""
    if not isinstance(payload, dict):
        return 0
    value = payload.get(key)
    if isinstance(value, bool):
        return 0
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return value


@dataclass
class BehaviorSummary:
    """Aggregates over one evaluation window."""
    adds: int = 0
    removes: int = 0
    time_spent_ms: float = 0
    scrolled_bottom: bool = False
    classification: Optional[Classification] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adds": self.adds,
            "removes": self.removes,
            "timeSpentMs": self.time_spent_ms,
            "scrolledBottom": self.scrolled_bottom,
            "classification": self.classification.value if self.classification else None,
        }


class BehaviorClassifier:
    """
    Classifies a window of behaviour events.

    Rules (first match wins):
    - cart adds + removes >= 3 and time spent >= 180000 ms: Anxious Browser
    - scrolled to >= 95% and no cart adds: Hesitant Buyer
    - otherwise: no classification
    """

    CART_CHURN_THRESHOLD = 3
    DWELL_THRESHOLD_MS = 180_000
    BOTTOM_SCROLL_PERCENT = 95

    def __init__(
        self,
        cart_churn_threshold: int = CART_CHURN_THRESHOLD,
        dwell_threshold_ms: int = DWELL_THRESHOLD_MS,
        bottom_scroll_percent: int = BOTTOM_SCROLL_PERCENT,
    ):
        self.cart_churn_threshold = cart_churn_threshold
        self.dwell_threshold_ms = dwell_threshold_ms
        self.bottom_scroll_percent = bottom_scroll_percent

    def summarize(self, events: Iterable[Any]) -> BehaviorSummary:
        """
        Aggregate events into a summary and apply the rules.

        Args:
            events: Objects with `event_type` and `event_payload`

        Returns:
            Summary with `classification` set when a rule matched
        """
        summary = BehaviorSummary()
        for event in events:
            event_type = event.event_type
            payload = event.event_payload
            if event_type == EventType.CART_ADD.value:
                summary.adds += 1
            elif event_type == EventType.CART_REMOVE.value:
                summary.removes += 1
            elif event_type == EventType.TIME_SPENT.value:
                summary.time_spent_ms += _number(payload, "ms")
            elif event_type == EventType.SCROLL_DEPTH.value:
                if _number(payload, "percent") >= self.bottom_scroll_percent:
                    summary.scrolled_bottom = True

        summary.classification = self.classify(summary)
        logger.debug(f"Behaviour summary: {summary.to_dict()}")
        return summary

    def classify(self, summary: BehaviorSummary) -> Optional[Classification]:
        if (
            summary.adds + summary.removes >= self.cart_churn_threshold
            and summary.time_spent_ms >= self.dwell_threshold_ms
        ):
            return Classification.ANXIOUS_BROWSER
        if summary.scrolled_bottom and summary.adds == 0:
            return Classification.HESITANT_BUYER
        return None
