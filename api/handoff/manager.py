"""
Escalation policy for the order support chatbot.

Decides when a conversation is handed to a human agent. Escalation is
one-way: once a conversation is flagged it stays flagged.
"""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class HandoffTrigger(Enum):
    """Reasons for handoff to human agent."""
    SENSITIVE_TOPIC = "sensitive_topic"
    UNRESOLVED_ORDER = "unresolved_order"
    USER_REQUEST = "user_request"


class EscalationPolicy:
    """
    Pure decision over message content and order-context availability.

    Trigger conditions:
    1. Message mentions payment credentials, passwords or national IDs
    2. Caller supplied an order reference that could not be resolved
    """

    SENSITIVE_MARKERS = (
        # payment credentials
        "credit card", "card number", "cvv",
        # passwords
        "password",
        # national identifiers
        "ssn", "social security",
    )

    def check_trigger(
        self,
        message: str,
        order_id_supplied: bool,
        order_resolved: bool,
    ) -> Optional[HandoffTrigger]:
        """Return the trigger reason, or None when the bot may answer."""
        lowered = (message or "").lower()
        if any(marker in lowered for marker in self.SENSITIVE_MARKERS):
            logger.info("Escalating: message touches a sensitive topic")
            return HandoffTrigger.SENSITIVE_TOPIC

        if order_id_supplied and not order_resolved:
            logger.info("Escalating: supplied order reference did not resolve")
            return HandoffTrigger.UNRESOLVED_ORDER

        return None

    def should_escalate(self, message: str, order_id_supplied: bool, order_resolved: bool) -> bool:
        return self.check_trigger(message, order_id_supplied, order_resolved) is not None
