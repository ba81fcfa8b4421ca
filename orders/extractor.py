"""
Order reference extraction for free-text messages.

Recognizes "ORDER" followed by an optional '-' or '_' and 3+ digits,
e.g. "order123", "ORDER-4567", "Order_0099".
"""

import re
from typing import Optional, Pattern


class OrderReferenceExtractor:
    """
    Pluggable order reference recognizer.

    The default pattern covers the storefront's ORDER-#### ids; pass a
    different pattern and prefix for other reference schemes.
    """

    DEFAULT_PATTERN = re.compile(r"\b(ORDER)[-_]?(\d{3,})\b", re.IGNORECASE)

    def __init__(self, pattern: Optional[Pattern[str]] = None):
        self.pattern = pattern or self.DEFAULT_PATTERN

    def extract(self, text: Optional[str]) -> Optional[str]:
        """Return the first normalized reference in `text`, or None."""
        if not text:
            return None
        match = self.pattern.search(text)
        if not match:
            return None
        return self.normalize(match)

    @staticmethod
    def normalize(match: "re.Match[str]") -> str:
        prefix, digits = match.group(1), match.group(2)
        return f"{prefix.upper()}-{digits}"


_default_extractor = OrderReferenceExtractor()


def extract_order_reference(text: Optional[str]) -> Optional[str]:
    """Extract an order reference using the default recognizer."""
    return _default_extractor.extract(text)
