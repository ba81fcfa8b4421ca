"""
Chat Orchestrator for the order support chatbot.

Orchestrates a chat turn from message to persisted reply, plus the
conversation operations exposed next to it (proactive seeding, manual
escalation, history and the escalation queue).
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.repositories import (
    ConversationRepository, OrderRepository, ProductRepository, UserRepository,
)
from database.session import run_best_effort, session_scope
from orders.recommendations import RecommendationEngine
from orders.resolver import OrderContextResolver
from .prompt_templates import PromptTemplates, PromptType
from .providers.base import ReplyProvider

logger = logging.getLogger(__name__)


def _utc_iso(value: datetime) -> str:
    """Stored timestamps are naive UTC; emit them with an explicit offset."""
    return value.replace(tzinfo=timezone.utc).isoformat()


class ConversationNotFound(Exception):
    """A conversation id was supplied but no such conversation exists."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class PersistenceError(Exception):
    """A required write to the conversation store failed."""


@dataclass
class ChatRequest:
    """Validated chat turn."""
    message: str
    order_id: Optional[str] = None
    conversation_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class ChatResponse:
    """Response from a chat turn."""
    reply: str
    escalated: bool
    conversation_id: str
    suggestions: List[Dict[str, Any]] = field(default_factory=list)
    processing_time_ms: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reply": self.reply,
            "escalated": self.escalated,
            "conversationId": self.conversation_id,
            "suggestions": self.suggestions,
        }


class ChatOrchestrator:
    """
    Orchestrates the chat pipeline.

    Pipeline:
    1. Ensure the user exists (best-effort)
    2. Resolve order context
    3. Decide escalation; escalating turns get the fixed hand-off reply
    4. Without an explicit order id, list the user's recent orders
    5. Otherwise generate a reply from FAQ + order + recommendations
    6. Fall back to a heuristic reply on any generation failure
    7. Persist conversation and the user/assistant message pair
    8. Return reply, escalation flag, conversation id and catalog suggestions

    Only step 7 writes (step 1 writes in its own best-effort transaction).
    Datastore reads use short sessions of their own; no session is held
    across the order-status, embedding or model calls.
    Conversation creation and the message insert commit separately, so a
    crash between them leaves an empty conversation behind.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        reply_provider: ReplyProvider,
        order_resolver: OrderContextResolver,
        escalation_policy: Any,
        knowledge_retriever: Optional[Any] = None,
        recommendation_engine: Optional[RecommendationEngine] = None,
        generation_timeout: float = 10.0,
        recent_order_limit: int = 5,
        suggestion_limit: int = 3,
    ):
        """
        Initialize the orchestrator.

        Args:
            session_factory: Factory for datastore sessions
            reply_provider: Generative reply backend
            order_resolver: Order context resolver
            escalation_policy: Decides hand-off to a human
            knowledge_retriever: Optional FAQ retriever
            recommendation_engine: Heuristic upsell rules
            generation_timeout: Seconds allowed for the model call
            recent_order_limit: Orders listed when asking the user to pick one
            suggestion_limit: Catalog suggestions returned per turn
        """
        self._session_factory = session_factory
        self.reply_provider = reply_provider
        self.order_resolver = order_resolver
        self.escalation_policy = escalation_policy
        self.knowledge_retriever = knowledge_retriever
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.generation_timeout = generation_timeout
        self.recent_order_limit = recent_order_limit
        self.suggestion_limit = suggestion_limit

    async def process(self, request: ChatRequest) -> ChatResponse:
        """
        Process a chat turn through the full pipeline.

        Args:
            request: Validated chat request

        Returns:
            Chat response

        Raises:
            ConversationNotFound: conversation_id does not exist
            PersistenceError: the turn could not be stored
        """
        start_time = time.time()

        # Step 1: Ensure user
        if request.user_id:
            await self.ensure_user(request.user_id)

        existing_id = None
        if request.conversation_id:
            async with session_scope(self._session_factory) as session:
                existing = await ConversationRepository(session).get_by_id(request.conversation_id)
            if existing is None:
                raise ConversationNotFound(request.conversation_id)
            existing_id = existing.id

        # Step 2: Resolve order context
        resolution = await self.order_resolver.resolve(request.order_id, request.message)

        # Step 3: Escalation decision
        trigger = self.escalation_policy.check_trigger(
            message=request.message,
            order_id_supplied=bool(request.order_id),
            order_resolved=resolution.resolved,
        )

        llm_seconds = None
        if trigger is not None:
            reply, path = PromptTemplates.HANDOFF_REPLY, "handoff"
            logger.info(f"Escalating turn ({trigger.value})")
        else:
            # Step 4: Recent orders short-circuit
            recent = []
            if not request.order_id and request.user_id:
                recent = await self._recent_orders(request.user_id)

            if recent:
                reply, path = PromptTemplates.recent_orders_reply(recent), "recent_orders"
            else:
                # Steps 5-6: Generate with fallback
                llm_start = time.time()
                reply, path = await self._generate_reply(request.message, resolution.context)
                llm_seconds = time.time() - llm_start

        # Step 7: Persist
        conversation_id, escalated = await self._persist_turn(
            request, existing_id=existing_id, escalate=trigger is not None, reply=reply,
        )

        # Step 8: Catalog suggestions
        suggestions = await self._catalog_suggestions()

        return ChatResponse(
            reply=reply,
            escalated=escalated,
            conversation_id=conversation_id,
            suggestions=suggestions,
            processing_time_ms=round((time.time() - start_time) * 1000, 2),
            metadata={
                "path": path,
                "trigger": trigger.value if trigger else None,
                "order_reference": resolution.reference,
                "order_source": resolution.source,
                "llm_seconds": llm_seconds,
            },
        )

    async def ensure_user(self, user_id: str) -> bool:
        """Create the user row if missing. Never raises."""
        return await run_best_effort(
            lambda session: UserRepository(session).ensure(user_id),
            f"ensure-user {user_id}",
            self._session_factory,
        )

    async def _recent_orders(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            async with session_scope(self._session_factory) as session:
                orders = await OrderRepository(session).list_recent_for_user(
                    user_id, limit=self.recent_order_limit
                )
        except SQLAlchemyError as e:
            logger.error(f"Recent orders lookup failed: {e}")
            return []
        return [order.to_context() for order in orders]

    async def _generate_reply(
        self, message: str, order_context: Optional[Dict[str, Any]]
    ) -> Tuple[str, str]:
        """
        Return (reply, path) where path is "generated" or "fallback".

        Runs with no session open; the FAQ lookup manages its own.
        """
        faq_context = None
        if self.knowledge_retriever is not None:
            match = await self.knowledge_retriever.find_best_match(message)
            if match:
                faq_context = match.as_context()

        recs_text = RecommendationEngine.format(self.recommendation_engine.recommend(order_context))
        context = PromptTemplates.build_support_context(order_context, faq_context, recs_text)

        generated = None
        try:
            generated = await asyncio.wait_for(
                self.reply_provider.generate(
                    PromptTemplates.get_system_prompt(PromptType.SUPPORT), context, message
                ),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Reply generation timed out after {self.generation_timeout}s")
        except Exception as e:
            logger.error(f"Reply generation failed: {e}")

        if PromptTemplates.is_failure_text(generated):
            fallback_recs = recs_text if order_context else ""
            return PromptTemplates.heuristic_reply(order_context, fallback_recs), "fallback"
        return generated.strip(), "generated"

    async def _persist_turn(
        self, request: ChatRequest, existing_id: Optional[str], escalate: bool, reply: str
    ) -> Tuple[str, bool]:
        try:
            if existing_id is None:
                async with session_scope(self._session_factory) as session:
                    conv = await ConversationRepository(session).create(
                        user_id=request.user_id, escalated=escalate
                    )
                    conversation_id = conv.id
            else:
                conversation_id = existing_id

            async with session_scope(self._session_factory) as session:
                repo = ConversationRepository(session)
                if existing_id is not None and escalate:
                    await repo.mark_escalated(conversation_id)
                await repo.add_turn(conversation_id, request.message, reply)
                conv = await repo.get_by_id(conversation_id)
                escalated = bool(conv.escalated) if conv else escalate
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist chat turn: {e}")
            raise PersistenceError("Failed to store the conversation") from e

        return conversation_id, escalated

    async def _catalog_suggestions(self) -> List[Dict[str, Any]]:
        try:
            async with session_scope(self._session_factory) as session:
                return await ProductRepository(session).list_featured(limit=self.suggestion_limit)
        except SQLAlchemyError as e:
            logger.warning(f"Catalog suggestions unavailable: {e}")
            return []

    # ── Conversation operations ─────────────────────────────────────

    async def start_proactive(self, user_id: str, message: str) -> str:
        """Create a conversation seeded with an assistant-authored opener."""
        try:
            async with session_scope(self._session_factory) as session:
                repo = ConversationRepository(session)
                conv = await repo.create(user_id=user_id, escalated=False)
                await repo.add_message(conv.id, "assistant", message)
                return conv.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to create proactive conversation: {e}")
            raise PersistenceError("Failed to create proactive conversation") from e

    async def escalate(self, conversation_id: str) -> bool:
        """
        Flag a conversation for a human agent.

        Idempotent: the hand-off notice is appended only on the transition.
        Returns True when this call raised the flag.
        """
        try:
            async with session_scope(self._session_factory) as session:
                repo = ConversationRepository(session)
                conv = await repo.get_by_id(conversation_id)
                if conv is None:
                    raise ConversationNotFound(conversation_id)
                if conv.escalated:
                    return False
                await repo.mark_escalated(conversation_id)
                await repo.add_message(conversation_id, "assistant", PromptTemplates.ESCALATION_NOTICE)
        except SQLAlchemyError as e:
            logger.error(f"Failed to escalate {conversation_id}: {e}")
            raise PersistenceError("Failed to escalate conversation") from e
        logger.info(f"Conversation {conversation_id} escalated on request")
        return True

    async def history(self, conversation_id: str) -> List[Dict[str, Any]]:
        async with session_scope(self._session_factory) as session:
            messages = await ConversationRepository(session).get_messages(conversation_id)
        return [
            {"role": m.role, "content": m.content, "createdAt": _utc_iso(m.created_at)}
            for m in messages
        ]

    async def escalations(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Escalated conversations, newest first, with their latest message."""
        items = []
        async with session_scope(self._session_factory) as session:
            repo = ConversationRepository(session)
            for conv in await repo.list_escalated(limit=limit):
                last = await repo.get_last_message(conv.id)
                items.append({
                    "id": conv.id,
                    "escalated": conv.escalated,
                    "createdAt": _utc_iso(conv.created_at),
                    "lastMessage": last.content if last else "",
                })
        return items
