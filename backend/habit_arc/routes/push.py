"""
Push Routes - Web Push subscription management, test delivery and the cron trigger
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from habit_arc.core.dependencies import (
    get_current_user_id,
    get_push_sender,
    get_repository,
    require_cron_secret
)
from habit_arc.core.exceptions import DatabaseError, InvalidRequestError
from habit_arc.models.notifications import SubscribeRequest, UnsubscribeRequest
from habit_arc.services.external.webpush import WebPushSender
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.notifications import push as push_service

router = APIRouter(prefix="/api/push", tags=["push"])


@router.post("/subscribe")
async def subscribe(
    request: SubscribeRequest,
    user_agent: Optional[str] = Header(None),
    user_id: str = Depends(get_current_user_id),
    repository: SupabaseRepository = Depends(get_repository)
):
    """Store the browser subscription of the signed-in user"""
    try:
        return push_service.register_subscription(repository, user_id, request.subscription, user_agent)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/unsubscribe")
async def unsubscribe(
    request: UnsubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    repository: SupabaseRepository = Depends(get_repository)
):
    try:
        return push_service.remove_subscription(repository, user_id, request.endpoint)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/test")
async def send_test(
    user_id: str = Depends(get_current_user_id),
    repository: SupabaseRepository = Depends(get_repository),
    sender: WebPushSender = Depends(get_push_sender)
):
    """Send a fixed notification to the caller's subscriptions"""
    try:
        return push_service.send_test_push(repository, sender, user_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.api_route("/cron", methods=["GET", "POST"], dependencies=[Depends(require_cron_secret)])
async def run_cron(
    repository: SupabaseRepository = Depends(get_repository),
    sender: WebPushSender = Depends(get_push_sender)
):
    """Run the reminder fan-out; meant to be hit hourly by an external scheduler"""
    try:
        result = push_service.run_push_fanout(repository, sender)
        return {"ok": result["ok"], "sent": result["sent"]}
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
