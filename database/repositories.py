"""
Repository classes for the order support chatbot data access layer.

Each repository encapsulates CRUD operations for a specific model.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    User, Conversation, Message, Order, KnowledgeEntry,
    BehaviorEvent, ProactivePrompt, Product, utcnow,
)

logger = logging.getLogger(__name__)


class UserRepository:
    """Data access for users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def ensure(self, user_id: str, email: Optional[str] = None) -> User:
        """Return the user, creating the row on first contact."""
        user = await self.get_by_id(user_id)
        if user:
            return user
        user = User(id=user_id, email=email)
        self.session.add(user)
        await self.session.flush()
        logger.info(f"Created user {user_id}")
        return user


class ConversationRepository:
    """Data access for conversations and messages."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: Optional[str] = None, escalated: bool = False) -> Conversation:
        conv = Conversation(user_id=user_id, escalated=escalated)
        self.session.add(conv)
        await self.session.flush()
        return conv

    async def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        result = await self.session.execute(
            select(Conversation).where(Conversation.id == conversation_id)
        )
        return result.scalar_one_or_none()

    async def mark_escalated(self, conversation_id: str) -> None:
        """Raise the escalation flag. There is no way to lower it."""
        await self.session.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(escalated=True)
        )
        await self.session.flush()

    async def add_message(self, conversation_id: str, role: str, content: str) -> Message:
        msg = Message(conversation_id=conversation_id, role=role, content=content)
        self.session.add(msg)
        await self.session.flush()
        return msg

    async def add_turn(self, conversation_id: str, user_content: str, assistant_content: str) -> Tuple[Message, Message]:
        """Append a user/assistant pair with strictly increasing timestamps."""
        now = utcnow()
        user_msg = Message(conversation_id=conversation_id, role="user", content=user_content, created_at=now)
        assistant_msg = Message(
            conversation_id=conversation_id,
            role="assistant",
            content=assistant_content,
            created_at=now + timedelta(microseconds=1),
        )
        self.session.add_all([user_msg, assistant_msg])
        await self.session.flush()
        return user_msg, assistant_msg

    async def get_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[Message]:
        q = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
        )
        if limit:
            q = q.limit(limit)
        result = await self.session.execute(q)
        return list(result.scalars().all())

    async def get_last_message(self, conversation_id: str) -> Optional[Message]:
        result = await self.session.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_escalated(self, limit: int = 50) -> List[Conversation]:
        result = await self.session.execute(
            select(Conversation)
            .where(Conversation.escalated.is_(True))
            .order_by(Conversation.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class OrderRepository:
    """Read-only access to orders."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id)
        )
        return result.scalar_one_or_none()

    async def list_recent_for_user(self, user_id: str, limit: int = 5) -> List[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class KnowledgeRepository:
    """FAQ entries with nearest-neighbour lookup over stored embeddings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, question: str, answer: str, embedding: Optional[List[float]] = None) -> KnowledgeEntry:
        entry = KnowledgeEntry(question=question, answer=answer, embedding=embedding)
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def match(self, embedding: Sequence[float], match_count: int = 1) -> List[Tuple[KnowledgeEntry, float]]:
        """Return the `match_count` most similar entries, best first."""
        result = await self.session.execute(
            select(KnowledgeEntry).where(KnowledgeEntry.embedding.is_not(None))
        )
        scored = [
            (entry, cosine_similarity(embedding, entry.embedding or []))
            for entry in result.scalars().all()
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:match_count]


class BehaviorEventRepository:
    """Append-only behaviour event log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        user_id: str,
        event_type: str,
        session_id: Optional[str] = None,
        event_payload: Optional[Any] = None,
    ) -> BehaviorEvent:
        event = BehaviorEvent(
            user_id=user_id,
            session_id=session_id,
            event_type=event_type,
            event_payload=event_payload,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_since(self, user_id: str, since: datetime, limit: int = 200) -> List[BehaviorEvent]:
        """Events for a user created at or after `since`, newest first."""
        result = await self.session.execute(
            select(BehaviorEvent)
            .where(BehaviorEvent.user_id == user_id, BehaviorEvent.created_at >= since)
            .order_by(BehaviorEvent.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class ProactivePromptRepository:
    """Data access for proactive prompts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> ProactivePrompt:
        prompt = ProactivePrompt(**kwargs)
        self.session.add(prompt)
        await self.session.flush()
        return prompt

    async def get_by_id(self, prompt_id: str) -> Optional[ProactivePrompt]:
        result = await self.session.execute(
            select(ProactivePrompt).where(ProactivePrompt.id == prompt_id)
        )
        return result.scalar_one_or_none()

    async def latest_for(self, user_id: str, classification: str, since: datetime) -> Optional[ProactivePrompt]:
        result = await self.session.execute(
            select(ProactivePrompt)
            .where(
                ProactivePrompt.user_id == user_id,
                ProactivePrompt.classification == classification,
                ProactivePrompt.created_at >= since,
            )
            .order_by(ProactivePrompt.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def set_engaged(self, prompt_id: str, engaged: bool) -> int:
        """Record engagement; returns the number of rows touched."""
        result = await self.session.execute(
            update(ProactivePrompt)
            .where(ProactivePrompt.id == prompt_id)
            .values(engaged=engaged)
        )
        await self.session.flush()
        return result.rowcount or 0


class ProductRepository:
    """Read-only catalog projection."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_featured(self, limit: int = 3) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(Product).order_by(Product.created_at.asc(), Product.sku.asc()).limit(limit)
        )
        return [p.to_suggestion() for p in result.scalars().all()]
