"""
Order context resolution.

Tries the order store first, then the order-status fallback provider.
When no reference was supplied, a reference is extracted from the
message text and the same two lookups are repeated with it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.repositories import OrderRepository
from database.session import session_scope
from .extractor import OrderReferenceExtractor
from .status_client import OrderStatusProvider

logger = logging.getLogger(__name__)


@dataclass
class OrderResolution:
    """Outcome of resolving an order reference."""
    reference: Optional[str] = None
    explicit: bool = False
    context: Optional[Dict[str, Any]] = None
    source: Optional[str] = None  # store | fallback
    attempts: list = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.context is not None


class OrderContextResolver:
    """
    Resolves order context from the most authoritative source available.

    The store read runs in its own short session; the fallback provider is
    called with no session open.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        status_provider: Optional[OrderStatusProvider] = None,
        extractor: Optional[OrderReferenceExtractor] = None,
    ):
        self._session_factory = session_factory
        self.status_provider = status_provider
        self.extractor = extractor or OrderReferenceExtractor()

    async def resolve(
        self,
        order_id: Optional[str],
        message: str = "",
    ) -> OrderResolution:
        """
        Resolve order context for a chat turn. Read-only.

        Args:
            order_id: Explicit reference from the caller, if any
            message: Raw message, used for extraction when order_id is absent

        Returns:
            OrderResolution; `context` is None when every source missed
        """
        explicit = bool(order_id)
        reference = order_id if explicit else self.extractor.extract(message)
        resolution = OrderResolution(reference=reference, explicit=explicit)

        if not reference:
            return resolution

        context = await self._from_store(reference)
        resolution.attempts.append("store")
        if context is not None:
            resolution.context, resolution.source = context, "store"
            return resolution

        if self.status_provider is not None:
            resolution.attempts.append("fallback")
            context = await self._from_fallback(reference)
            if context is not None:
                resolution.context, resolution.source = context, "fallback"

        if resolution.context is None:
            logger.info(f"No order context for {reference} (explicit={explicit})")
        return resolution

    async def _from_store(self, reference: str) -> Optional[Dict[str, Any]]:
        try:
            async with session_scope(self._session_factory) as session:
                order = await OrderRepository(session).get_by_id(reference)
                return order.to_context() if order else None
        except Exception as e:
            logger.error(f"Order store lookup failed for {reference}: {e}")
            return None

    async def _from_fallback(self, reference: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.status_provider.fetch_order(reference)
        except Exception as e:
            logger.warning(f"Order status provider error for {reference}: {e}")
            return None
