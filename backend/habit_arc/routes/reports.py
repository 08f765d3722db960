"""
Report Routes - Weekly summary preview and on-demand email
"""
from fastapi import APIRouter, Depends, HTTPException

from habit_arc.core.dependencies import get_current_user_id, get_email_sender, get_habit_store, get_repository
from habit_arc.core.exceptions import DatabaseError, ExternalServiceError, InvalidRequestError
from habit_arc.services.external.email import EmailSender
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.habits.store import HabitStore
from habit_arc.services.reports.weekly import generate_weekly_email_template, generate_weekly_report, send_weekly_email

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/weekly")
async def preview_weekly_report(store: HabitStore = Depends(get_habit_store)):
    """Current week's summary plus the rendered email"""
    try:
        report = generate_weekly_report(store.list_identities(), store.list_habits())
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "report": report.model_dump(mode="json", by_alias=True),
        "email": generate_weekly_email_template(report).model_dump(),
    }


@router.post("/weekly/email")
async def email_weekly_report(
    user_id: str = Depends(get_current_user_id),
    store: HabitStore = Depends(get_habit_store),
    repository: SupabaseRepository = Depends(get_repository),
    sender: EmailSender = Depends(get_email_sender)
):
    """Send this week's summary to the signed-in user's address"""
    try:
        report = generate_weekly_report(store.list_identities(), store.list_habits())
        message_id = send_weekly_email(report, repository.get_user_email(user_id), sender)
        return {"ok": True, "id": message_id}
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
