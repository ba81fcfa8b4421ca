"""
Storefront helper routes: visitor identification, cart events and the
synthetic order-status provider used as the order lookup fallback.
"""

import logging
import uuid
from datetime import date, timedelta
from typing import Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from ..services import Services, get_services
from behavior.classifier import EventType

logger = logging.getLogger(__name__)

router = APIRouter()

UID_COOKIE = "uid"
SYNTHETIC_ETA_DAYS = 3


class CartAddRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, max_length=64)
    sku: str = Field(..., min_length=1, max_length=64)


@router.get("/identify")
async def identify(request: Request, response: Response, services: Services = Depends(get_services)) -> Dict[str, str]:
    """Return the visitor id, assigning a `uid` cookie on first visit."""
    uid = request.cookies.get(UID_COOKIE)
    if not uid:
        uid = str(uuid.uuid4())
        response.set_cookie(UID_COOKIE, uid, httponly=False, samesite="lax")
    await services.orchestrator.ensure_user(uid)
    return {"userId": uid}


@router.post("/cart/add")
async def cart_add(
    request: CartAddRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> Dict[str, bool]:
    background_tasks.add_task(
        services.event_log.record,
        request.user_id,
        EventType.CART_ADD.value,
        None,
        {"sku": request.sku},
    )
    return {"ok": True}


@router.get("/order/{order_id}")
async def order_status(order_id: str) -> Dict[str, str]:
    """Synthetic status for orders unknown to the store."""
    eta = date.today() + timedelta(days=SYNTHETIC_ETA_DAYS)
    return {"id": order_id, "status": "in_transit", "delivery_eta": eta.isoformat()}
