"""
Coach Routes - Read-only habit data for external coaching tools
Authenticated with COACH_API_KEY (x-api-key header or api_key query param)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from habit_arc.core.dependencies import get_repository, require_coach_api_key
from habit_arc.core.exceptions import DatabaseError
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.reports import coach as coach_service

router = APIRouter(prefix="/coach", tags=["coach"], dependencies=[Depends(require_coach_api_key)])

AVAILABLE_ENDPOINTS = ["/habits", "/stats", "/today", "/motivation"]


def require_user_id(user_id: Optional[str] = Query(None)) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id parameter is required")
    return user_id


@router.get("/habits")
async def get_habits(user_id: str = Depends(require_user_id),
                     repository: SupabaseRepository = Depends(get_repository)):
    """Every habit with progress, current streak and completion rate"""
    try:
        return {"habits": coach_service.get_habits_report(repository, user_id)}
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats")
async def get_stats(user_id: str = Depends(require_user_id),
                    repository: SupabaseRepository = Depends(get_repository)):
    try:
        return {"stats": coach_service.get_stats_report(repository, user_id)}
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/today")
async def get_today(user_id: str = Depends(require_user_id),
                    repository: SupabaseRepository = Depends(get_repository)):
    try:
        return {"today": coach_service.get_today_report(repository, user_id)}
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/motivation")
async def get_motivation(user_id: str = Depends(require_user_id),
                         repository: SupabaseRepository = Depends(get_repository)):
    """Motivational message built from today's completion and streaks"""
    try:
        return coach_service.build_motivation(repository, user_id)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{unknown:path}")
async def unknown_endpoint(unknown: str):
    return JSONResponse(
        {"error": "Unknown endpoint", "availableEndpoints": AVAILABLE_ENDPOINTS},
        status_code=404
    )
