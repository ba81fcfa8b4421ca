"""
SQLAlchemy ORM models for the order support chatbot.

All persistent entities: users, conversations, messages, orders,
knowledge entries, behaviour events, proactive prompts and products.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey, JSON, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    # Anonymous conversations are allowed, so no FK to users.
    user_id = Column(String(64), nullable=True, index=True)
    escalated = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_conv_escalated_created", "escalated", "created_at"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(10), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=True, index=True)
    status = Column(String(30), nullable=False, default="processing")  # processing, in_transit, delivered, ...
    delivery_eta = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def to_context(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "delivery_eta": self.delivery_eta,
        }


class KnowledgeEntry(Base):
    """FAQ entry with a precomputed embedding."""
    __tablename__ = "faqs"

    id = Column(String(36), primary_key=True, default=_uuid)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    embedding = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class BehaviorEvent(Base):
    __tablename__ = "user_behavior"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)
    session_id = Column(String(64), nullable=True)
    event_type = Column(String(40), nullable=False)
    event_payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_behavior_user_created", "user_id", "created_at"),
    )


class ProactivePrompt(Base):
    __tablename__ = "proactive_prompts"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    session_id = Column(String(64), nullable=True)
    classification = Column(String(40), nullable=False)
    prompt = Column(Text, nullable=False)
    engaged = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Product(Base):
    __tablename__ = "products"

    sku = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    blurb = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    def to_suggestion(self) -> dict:
        return {
            "sku": self.sku,
            "title": self.title,
            "blurb": self.blurb or "",
            "price": round((self.price_cents or 0) / 100, 2),
        }
