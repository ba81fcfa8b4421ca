"""
Heuristic upsell recommendations keyed off order state.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Recommendation:
    title: str
    blurb: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "blurb": self.blurb}


PROTECTION_PLAN = Recommendation("Premium Protection Plan", "Covers accidental damage for 2 years.")
FAST_CHARGER = Recommendation("Fast Charger (USB-C 30W)", "Charges compatible devices up to 2x faster.")
BUNDLE_DISCOUNT = Recommendation("Bundle: Case + Screen Guard", "Save 15% when bundled together.")
EXTENDED_WARRANTY = Recommendation("Popular Add-on: Extended Warranty", "Extra peace of mind for a small price.")


class RecommendationEngine:
    """
    Rule table evaluated independently, in order:

    - id contains "100" or status in_transit -> protection plan
    - id contains "200" or status processing -> accessory
    - id contains "300" or status delivered  -> bundle discount
    - nothing matched                         -> extended warranty
    """

    MAX_RESULTS = 3

    RULES = [
        ("100", "in_transit", PROTECTION_PLAN),
        ("200", "processing", FAST_CHARGER),
        ("300", "delivered", BUNDLE_DISCOUNT),
    ]

    def recommend(self, order_context: Optional[Dict[str, Any]]) -> List[Recommendation]:
        if not order_context:
            return [EXTENDED_WARRANTY]

        order_id = str(order_context.get("id") or "")
        status = str(order_context.get("status") or "processing")

        recs = [
            rec for id_marker, status_marker, rec in self.RULES
            if id_marker in order_id or status == status_marker
        ]
        if not recs:
            recs.append(EXTENDED_WARRANTY)
        return recs[:self.MAX_RESULTS]

    @staticmethod
    def format(recs: List[Recommendation]) -> str:
        """Render as the "You might also like" block appended to replies."""
        if not recs:
            return ""
        lines = "\n".join(f"• {r.title} - {r.blurb}" for r in recs)
        return f"\n\nYou might also like:\n{lines}"
