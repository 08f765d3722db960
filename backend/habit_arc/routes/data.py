"""
Data Routes - Identities, habits, progress toggling and import/export
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from habit_arc.core.dependencies import get_habit_store
from habit_arc.core.exceptions import (
    DatabaseError,
    HabitNotFoundError,
    IdentityNotFoundError,
    InvalidHabitDataError
)
from habit_arc.models.habit import (
    CreateHabitRequest,
    CreateIdentityRequest,
    ToggleDayRequest,
    UpdateHabitRequest,
    UpdateIdentityRequest
)
from habit_arc.services.habits.progress import calculate_habit_stats, calculate_identity_score
from habit_arc.services.habits.store import HabitStore

router = APIRouter(tags=["data"])


# ===== IDENTITIES =====

@router.get("/identities")
async def list_identities(store: HabitStore = Depends(get_habit_store)):
    """All identities, with the average completion of their linked habits"""
    try:
        habits = store.list_habits()
        return [
            {**identity.model_dump(by_alias=True), "score": calculate_identity_score(identity.id, habits)}
            for identity in store.list_identities()
        ]
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/identities", status_code=201)
async def create_identity(request: CreateIdentityRequest, store: HabitStore = Depends(get_habit_store)):
    try:
        identity = store.create_identity(request.name, request.description, request.color)
        return identity.model_dump(by_alias=True)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/identities/{identity_id}")
async def update_identity(identity_id: int, request: UpdateIdentityRequest,
                          store: HabitStore = Depends(get_habit_store)):
    try:
        identity = store.update_identity(identity_id, request.name, request.description)
        return identity.model_dump(by_alias=True)
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/identities/{identity_id}")
async def delete_identity(identity_id: int, store: HabitStore = Depends(get_habit_store)):
    """Delete an identity and unlink it from every habit"""
    try:
        store.delete_identity(identity_id)
        return {"ok": True}
    except IdentityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


# ===== HABITS =====

@router.get("/habits")
async def list_habits(store: HabitStore = Depends(get_habit_store)):
    try:
        return [habit.model_dump(mode="json", by_alias=True) for habit in store.list_habits()]
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/habits", status_code=201)
async def create_habit(request: CreateHabitRequest, store: HabitStore = Depends(get_habit_store)):
    """Create a habit with an all-false progress window of totalDays"""
    try:
        habit = store.create_habit(request.name, request.type, request.total_days, request.linked_identities)
        return habit.model_dump(mode="json", by_alias=True)
    except InvalidHabitDataError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/habits/{habit_id}")
async def update_habit(habit_id: int, request: UpdateHabitRequest,
                       store: HabitStore = Depends(get_habit_store)):
    try:
        habit = store.update_habit(habit_id, request.model_dump(exclude_unset=True))
        return habit.model_dump(mode="json", by_alias=True)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidHabitDataError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/habits/{habit_id}")
async def delete_habit(habit_id: int, store: HabitStore = Depends(get_habit_store)):
    try:
        store.delete_habit(habit_id)
        return {"ok": True}
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/habits/{habit_id}/toggle")
async def toggle_habit_day(habit_id: int, request: ToggleDayRequest,
                           store: HabitStore = Depends(get_habit_store)):
    """Flip one day; toggling past the window extends it"""
    try:
        habit = store.toggle_habit_day(habit_id, request.day_index)
        return habit.model_dump(mode="json", by_alias=True)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/habits/{habit_id}/stats")
async def get_habit_stats(habit_id: int, store: HabitStore = Depends(get_habit_store)):
    try:
        return calculate_habit_stats(store.get_habit(habit_id)).model_dump(by_alias=True)
    except HabitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


# ===== IMPORT / EXPORT =====

@router.get("/data/stats")
async def get_stats(store: HabitStore = Depends(get_habit_store)):
    try:
        return store.get_stats().model_dump(by_alias=True)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/data/export")
async def export_data(store: HabitStore = Depends(get_habit_store)):
    """Download every identity and habit as a JSON snapshot"""
    try:
        return Response(
            content=store.export_data(),
            media_type="application/json",
            headers={"Content-Disposition": 'attachment; filename="habit-arc-export.json"'}
        )
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/data/import")
async def import_data(request: Request, store: HabitStore = Depends(get_habit_store)):
    """Replace all data with a previously exported snapshot"""
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        imported = store.import_data(body)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not imported:
        raise HTTPException(status_code=400, detail="Invalid import file")
    return {"ok": True}
