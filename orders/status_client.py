"""
Client for the order-status fallback provider.

The provider is a synthetic status service keyed by order id. It is
only consulted when the order store has no row for the reference.
"""

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


@runtime_checkable
class OrderStatusProvider(Protocol):
    """Protocol for order-status lookups."""

    async def fetch_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Return `{id, status, delivery_eta}` or None when unavailable."""
        ...


class OrderStatusClient:
    """HTTP client for the order-status provider with an explicit timeout."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/order/{quote(order_id, safe='')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Order status lookup failed for {order_id}: {e}")
            return None

        if response.status_code != 200:
            logger.info(f"Order status provider returned {response.status_code} for {order_id}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Order status provider sent a non-JSON body for {order_id}")
            return None

        if not isinstance(data, dict):
            return None
        data.setdefault("id", order_id)
        return data
