"""
Orders Module for the order support chatbot.

This module provides order-centric context for replies:
- Order reference extraction from free text
- Order context resolution (store, then fallback provider)
- Heuristic upsell recommendations
"""

from .extractor import OrderReferenceExtractor, extract_order_reference
from .resolver import OrderContextResolver, OrderResolution
from .status_client import OrderStatusClient, OrderStatusProvider
from .recommendations import Recommendation, RecommendationEngine

__all__ = [
    "OrderReferenceExtractor",
    "extract_order_reference",
    "OrderContextResolver",
    "OrderResolution",
    "OrderStatusClient",
    "OrderStatusProvider",
    "Recommendation",
    "RecommendationEngine",
]
