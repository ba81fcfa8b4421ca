"""
Behaviour API Routes: event ingestion, evaluation and engagement.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..middleware.metrics import record_classification
from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/behavior")


# ── Models ────────────────────────────────────────────

class BehaviorLogRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, max_length=64)
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=64)
    event_type: str = Field(..., alias="eventType", min_length=1, max_length=40)
    event_payload: Optional[Any] = Field(default=None, alias="eventPayload")


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, max_length=64)
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=64)
    force: bool = False


class EngagementRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_id: str = Field(..., alias="promptId", min_length=1)
    engaged: bool


class EvaluateResponse(BaseModel):
    shouldPrompt: bool
    promptId: Optional[str] = None
    prompt: Optional[str] = None
    classification: Optional[str] = None


# ── Endpoints ─────────────────────────────────────────

@router.post("/log")
async def log_event(
    request: BehaviorLogRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> Dict[str, bool]:
    """Record a behaviour event. Fire-and-forget; always acknowledges."""
    background_tasks.add_task(services.orchestrator.ensure_user, request.user_id)
    background_tasks.add_task(
        services.event_log.record,
        request.user_id,
        request.event_type,
        request.session_id,
        request.event_payload,
    )
    return {"ok": True}


@router.post("/evaluate", response_model=EvaluateResponse, response_model_exclude_none=True)
async def evaluate(request: EvaluateRequest, services: Services = Depends(get_services)):
    """Classify the user's last window of behaviour and maybe emit a prompt."""
    await services.orchestrator.ensure_user(request.user_id)
    decision = await services.prompt_generator.evaluate(
        request.user_id, session_id=request.session_id, force=request.force
    )
    if decision.should_prompt and not decision.reused:
        record_classification(decision.classification)
    return decision.to_dict()


@router.post("/engagement")
async def engagement(
    request: EngagementRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> Dict[str, bool]:
    """Record whether the user acted on a prompt. Best-effort."""
    background_tasks.add_task(services.engagement_tracker.record, request.prompt_id, request.engaged)
    return {"ok": True}
