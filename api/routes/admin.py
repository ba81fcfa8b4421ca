"""
Admin API Routes for the order support chatbot.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


class EscalationItem(BaseModel):
    id: str
    escalated: bool
    createdAt: str
    lastMessage: str


class EscalationList(BaseModel):
    items: List[EscalationItem]


@router.get("/escalations", response_model=EscalationList)
async def list_escalations(
    limit: int = Query(default=50, ge=1, le=50),
    services: Services = Depends(get_services),
):
    """Escalated conversations, newest first, with their latest message."""
    return {"items": await services.orchestrator.escalations(limit=limit)}
