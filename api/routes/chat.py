"""
Chat API Routes for the order support chatbot.
"""

import logging
import uuid
from typing import List, Dict, Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..handoff.manager import HandoffTrigger
from ..middleware.metrics import record_chat_turn, record_escalation
from ..services import Services, get_services
from llm.orchestrator import ChatRequest as OrchestratorRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _trimmed(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _optional_uuid(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(uuid.UUID(value))


# ── Request / Response Models ─────────────────────────────────────

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=2000)
    order_id: Optional[str] = Field(default=None, alias="orderId", max_length=64)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    user_id: Optional[str] = Field(default=None, alias="userId")

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v):
        return _trimmed(v)

    @field_validator("order_id", "conversation_id", "user_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        v = _trimmed(v)
        return v or None

    @field_validator("conversation_id", "user_id")
    @classmethod
    def must_be_uuid(cls, v):
        try:
            return _optional_uuid(v)
        except ValueError:
            raise ValueError("must be a UUID")


class Suggestion(BaseModel):
    sku: str
    title: str
    blurb: Optional[str] = None
    price: float


class ChatResponse(BaseModel):
    reply: str
    escalated: bool
    conversationId: str
    suggestions: List[Suggestion] = []


class ProactiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, max_length=64)
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator("user_id", "message", mode="before")
    @classmethod
    def strip(cls, v):
        return _trimmed(v)


class ProactiveResponse(BaseModel):
    conversationId: str


class HistoryItem(BaseModel):
    role: str
    content: str
    createdAt: str


class ConversationHistory(BaseModel):
    messages: List[HistoryItem]


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, services: Services = Depends(get_services)):
    """
    Process a chat turn.

    1. Resolve order  2. Decide escalation  3. Reply (hand-off, recent
    orders, generated or heuristic)  4. Persist  5. Return suggestions
    """
    result = await services.orchestrator.process(OrchestratorRequest(
        message=request.message,
        order_id=request.order_id,
        conversation_id=request.conversation_id,
        user_id=request.user_id,
    ))

    meta = result.metadata
    record_chat_turn(meta.get("path", "unknown"), meta.get("llm_seconds"))
    if meta.get("trigger"):
        record_escalation(meta["trigger"])

    return result.to_dict()


@router.post("/chat/proactive", response_model=ProactiveResponse)
async def start_proactive(request: ProactiveRequest, services: Services = Depends(get_services)):
    """Seed a conversation with an assistant-authored opener."""
    await services.orchestrator.ensure_user(request.user_id)
    conversation_id = await services.orchestrator.start_proactive(request.user_id, request.message)
    return {"conversationId": conversation_id}


@router.get("/chat/{conversation_id}/messages", response_model=ConversationHistory)
async def get_messages(conversation_id: str, services: Services = Depends(get_services)):
    """Messages of a conversation, oldest first."""
    return {"messages": await services.orchestrator.history(conversation_id)}


@router.post("/chat/{conversation_id}/escalate")
async def escalate(conversation_id: str, services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Hand a conversation to a human. Repeating the call is a no-op."""
    if await services.orchestrator.escalate(conversation_id):
        record_escalation(HandoffTrigger.USER_REQUEST.value)
    return {"ok": True}
