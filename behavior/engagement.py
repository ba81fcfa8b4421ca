"""
Engagement Tracker: records whether a user acted on a proactive prompt.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.repositories import ProactivePromptRepository
from database.session import run_best_effort

logger = logging.getLogger(__name__)


class EngagementTracker:
    """Best-effort engagement writes. No ownership check; last write wins."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def record(self, prompt_id: str, engaged: bool) -> bool:
        async def _write(session: AsyncSession):
            touched = await ProactivePromptRepository(session).set_engaged(prompt_id, engaged)
            if not touched:
                logger.info(f"Engagement for unknown prompt {prompt_id} ignored")

        return await run_best_effort(_write, f"engagement for prompt {prompt_id}", self._session_factory)
