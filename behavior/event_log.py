"""
Append-only behaviour event log.

Writes are fire-and-forget: they run in their own transaction and a
failure is logged, never raised to the request that produced the event.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import BehaviorEvent, utcnow
from database.repositories import BehaviorEventRepository
from database.session import run_best_effort

logger = logging.getLogger(__name__)


class BehaviorEventLog:
    """Records and reads behaviour events for a user."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        window_minutes: int = 10,
        event_limit: int = 200,
    ):
        self._session_factory = session_factory
        self.window = timedelta(minutes=window_minutes)
        self.event_limit = event_limit

    async def record(
        self,
        user_id: str,
        event_type: str,
        session_id: Optional[str] = None,
        event_payload: Optional[Any] = None,
    ) -> bool:
        """Best-effort append. Returns False when the write was dropped."""

        async def _write(session: AsyncSession):
            await BehaviorEventRepository(session).add(
                user_id=user_id,
                event_type=event_type,
                session_id=session_id,
                event_payload=event_payload,
            )

        return await run_best_effort(_write, f"behavior log {event_type} for {user_id}", self._session_factory)

    def window_start(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) - self.window

    async def recent(self, session: AsyncSession, user_id: str, now: Optional[datetime] = None) -> List[BehaviorEvent]:
        """Events inside the trailing window, newest first, capped."""
        events = await BehaviorEventRepository(session).list_since(
            user_id, self.window_start(now), limit=self.event_limit
        )
        logger.debug(f"{len(events)} behaviour events in window for {user_id}")
        return events
