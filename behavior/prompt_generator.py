"""
Proactive Prompt Generator.

Runs the classifier over a user's recent events and, when warranted,
produces and stores a short proactive message.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.repositories import ProactivePromptRepository
from database.session import session_scope
from llm.orchestrator import PersistenceError
from llm.prompt_templates import PromptTemplates, PromptType
from llm.providers.base import ReplyProvider
from .classifier import BehaviorClassifier, BehaviorSummary, Classification
from .event_log import BehaviorEventLog

logger = logging.getLogger(__name__)


@dataclass
class PromptDecision:
    """Outcome of one evaluation call."""
    should_prompt: bool
    prompt_id: Optional[str] = None
    prompt: Optional[str] = None
    classification: Optional[str] = None
    summary: Optional[BehaviorSummary] = None
    reused: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if not self.should_prompt:
            return {"shouldPrompt": False}
        return {
            "shouldPrompt": True,
            "promptId": self.prompt_id,
            "prompt": self.prompt,
            "classification": self.classification,
        }


class ProactivePromptGenerator:
    """
    Evaluates behaviour and emits proactive prompts.

    - No rule match and not forced: no prompt
    - Forced with no match: fixed greeting, no model call
    - Rule match: model-written message, per-label template on failure

    Every emitted prompt is stored as a new row unless `dedupe` is on, in
    which case the latest same-label prompt inside the window is served again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        reply_provider: ReplyProvider,
        event_log: BehaviorEventLog,
        classifier: Optional[BehaviorClassifier] = None,
        generation_timeout: float = 10.0,
        dedupe: bool = False,
    ):
        self._session_factory = session_factory
        self.reply_provider = reply_provider
        self.event_log = event_log
        self.classifier = classifier or BehaviorClassifier()
        self.generation_timeout = generation_timeout
        self.dedupe = dedupe

    async def evaluate(self, user_id: str, session_id: Optional[str] = None, force: bool = False) -> PromptDecision:
        """
        Classify the user's recent behaviour and emit a prompt if warranted.

        Args:
            user_id: User to evaluate
            session_id: Storefront session, stored on the prompt row
            force: Emit the generic greeting even when no rule matches

        Returns:
            PromptDecision

        Raises:
            SQLAlchemyError: the event window could not be read
            PersistenceError: the prompt row could not be stored
        """
        async with session_scope(self._session_factory) as session:
            events = await self.event_log.recent(session, user_id)
        summary = self.classifier.summarize(events)

        if summary.classification is None and not force:
            return PromptDecision(should_prompt=False, summary=summary)

        label = summary.classification or Classification.PROACTIVE_GREETING
        logger.info(f"User {user_id} classified as {label.value} ({len(events)} events)")

        if self.dedupe:
            existing = await self._latest_prompt(user_id, label)
            if existing is not None:
                return PromptDecision(
                    should_prompt=True,
                    prompt_id=existing.id,
                    prompt=existing.prompt,
                    classification=label.value,
                    summary=summary,
                    reused=True,
                )

        if summary.classification is None:
            text = PromptTemplates.PROACTIVE_GREETING
        else:
            text = await self._generate(summary)

        try:
            async with session_scope(self._session_factory) as session:
                row = await ProactivePromptRepository(session).create(
                    user_id=user_id,
                    session_id=session_id,
                    classification=label.value,
                    prompt=text,
                )
                prompt_id = row.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to store proactive prompt for {user_id}: {e}")
            raise PersistenceError("Failed to store proactive prompt") from e

        return PromptDecision(
            should_prompt=True,
            prompt_id=prompt_id,
            prompt=text,
            classification=label.value,
            summary=summary,
        )

    async def _latest_prompt(self, user_id: str, label: Classification):
        async with session_scope(self._session_factory) as session:
            return await ProactivePromptRepository(session).latest_for(
                user_id, label.value, self.event_log.window_start()
            )

    async def _generate(self, summary: BehaviorSummary) -> str:
        label = summary.classification.value
        try:
            text = await asyncio.wait_for(
                self.reply_provider.generate(
                    PromptTemplates.get_system_prompt(PromptType.PROACTIVE),
                    json.dumps(summary.to_dict()),
                    PromptTemplates.proactive_request(summary.to_dict()),
                ),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Proactive generation timed out for {label}")
            text = None
        except Exception as e:
            logger.error(f"Proactive generation failed for {label}: {e}")
            text = None

        if PromptTemplates.is_failure_text(text):
            return PromptTemplates.proactive_fallback(label)
        return text.strip()
