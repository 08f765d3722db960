"""
Notification Routes - Telegram / WhatsApp reminder endpoint
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from habit_arc.core.dependencies import get_channel_transports, get_optional_user_id, get_repository
from habit_arc.models.notifications import NotificationMode, NotificationRequest
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.notifications.channels import ChannelTransports, fan_out, send_notification_to_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _error(reason: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": "error", "reason": reason}, status_code=status_code)


@router.post("/send")
async def send_notification(
    request: Optional[NotificationRequest] = None,
    caller_id: Optional[str] = Depends(get_optional_user_id),
    repository: SupabaseRepository = Depends(get_repository),
    transports: ChannelTransports = Depends(get_channel_transports)
):
    """
    Send the channel reminder

    mode 'single' targets userId or the bearer's user; mode 'fanout' targets
    the explicit userId list.
    """
    request = request or NotificationRequest()

    if request.mode == NotificationMode.SINGLE.value:
        user_id = request.user_id if isinstance(request.user_id, str) else caller_id
        if not user_id:
            return _error("Could not identify the user", 401)
        return send_notification_to_user(
            repository, user_id, transports,
            reason=request.reason,
            preview_message=request.preview_message
        )

    if request.mode == NotificationMode.FANOUT.value:
        if isinstance(request.user_id, list):
            user_ids = request.user_id
        else:
            user_ids = [request.user_id] if request.user_id else []
        if not user_ids:
            return _error("No users provided for fanout mode", 400)
        return fan_out(repository, user_ids, transports, reason=request.reason)

    return _error(f"Mode {request.mode} not supported", 400)
