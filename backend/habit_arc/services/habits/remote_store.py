"""
Remote Habit Store - Supabase-backed persistence for multi-user deployments
Mirrors the local store operations over the identities, habits,
habit_identities and habit_progress tables.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from pydantic import ValidationError
from supabase import Client

from habit_arc.core.constants import DEFAULT_IDENTITY_COLOR
from habit_arc.core.exceptions import (
    AuthenticationError,
    DatabaseError,
    HabitNotFoundError,
    IdentityNotFoundError,
    InvalidHabitDataError
)
from habit_arc.models.auth import SessionResponse
from habit_arc.models.habit import ExportSnapshot, Habit, HabitType, Identity, now_iso
from .store import HabitStore

logger = logging.getLogger(__name__)


def _identity_from_row(row: Dict[str, Any]) -> Identity:
    return Identity(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        color=row.get("color") or DEFAULT_IDENTITY_COLOR,
        created_at=row["created_at"],
    )


def build_progress(total_days: int, rows: List[Dict[str, Any]]) -> List[bool]:
    """
    Rebuild a progress array from habit_progress rows

    Rows past total_days widen the array so nothing recorded is dropped.
    """
    length = max([int(total_days or 0)] + [r["day_index"] + 1 for r in rows])
    progress = [False] * length
    for row in rows:
        progress[row["day_index"]] = bool(row.get("completed"))
    return progress


class RemoteHabitStore(HabitStore):
    """HabitStore scoped to one user of the hosted backend"""

    def __init__(self, client: Client, user_id: str):
        self.client = client
        self.user_id = user_id

    # ===== IDENTITIES =====

    def create_identity(self, name: str, description: Optional[str] = None,
                        color: Optional[str] = None) -> Identity:
        try:
            result = self.client.table("identities").insert({
                "name": name,
                "description": description,
                "color": color or DEFAULT_IDENTITY_COLOR,
                "user_id": self.user_id
            }).execute()
        except Exception as e:
            logger.error(f"Database error creating identity: {e}")
            raise DatabaseError(f"Failed to create identity: {e}")
        return _identity_from_row(result.data[0])

    def list_identities(self) -> List[Identity]:
        try:
            result = self.client.table("identities")\
                .select("*")\
                .eq("user_id", self.user_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Database error fetching identities: {e}")
            raise DatabaseError(f"Failed to fetch identities: {e}")
        return [_identity_from_row(row) for row in result.data]

    def update_identity(self, identity_id: int, name: str, description: Optional[str] = None) -> Identity:
        try:
            result = self.client.table("identities")\
                .update({"name": name, "description": description, "updated_at": now_iso()})\
                .eq("id", identity_id)\
                .eq("user_id", self.user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Database error updating identity {identity_id}: {e}")
            raise DatabaseError(f"Failed to update identity: {e}")
        if not result.data:
            raise IdentityNotFoundError(f"Identity {identity_id} not found")
        return _identity_from_row(result.data[0])

    def delete_identity(self, identity_id: int) -> None:
        """Delete an owned identity, then drop its habit links"""
        try:
            result = self.client.table("identities")\
                .delete()\
                .eq("id", identity_id)\
                .eq("user_id", self.user_id)\
                .execute()
            if not result.data:
                raise IdentityNotFoundError(f"Identity {identity_id} not found")
            self.client.table("habit_identities").delete().eq("identity_id", identity_id).execute()
        except IdentityNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Database error deleting identity {identity_id}: {e}")
            raise DatabaseError(f"Failed to delete identity: {e}")

    def _owned_identity_ids(self, identity_ids: List[int]) -> List[int]:
        """Keep only ids of identities this user owns, in the given order"""
        wanted = list(dict.fromkeys(identity_ids))
        if not wanted:
            return []
        try:
            result = self.client.table("identities")\
                .select("id")\
                .eq("user_id", self.user_id)\
                .in_("id", wanted)\
                .execute()
        except Exception as e:
            logger.error(f"Database error checking identities: {e}")
            raise DatabaseError(f"Failed to check identities: {e}")
        owned = {row["id"] for row in result.data}
        dropped = [i for i in wanted if i not in owned]
        if dropped:
            logger.warning(f"Ignoring identities not owned by {self.user_id}: {dropped}")
        return [i for i in wanted if i in owned]

    # ===== HABITS =====

    def create_habit(self, name: str, habit_type: HabitType, total_days: int,
                     linked_identities: List[int]) -> Habit:
        linked = self._owned_identity_ids(linked_identities)
        try:
            result = self.client.table("habits").insert({
                "name": name,
                "type": HabitType(habit_type).value,
                "total_days": total_days,
                "user_id": self.user_id
            }).execute()
            row = result.data[0]

            if linked:
                self.client.table("habit_identities").insert([
                    {"habit_id": row["id"], "identity_id": identity_id} for identity_id in linked
                ]).execute()

            self.client.table("habit_progress").insert([
                {"habit_id": row["id"], "day_index": i, "completed": False} for i in range(total_days)
            ]).execute()
        except Exception as e:
            logger.error(f"Database error creating habit: {e}")
            raise DatabaseError(f"Failed to create habit: {e}")

        return Habit(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            total_days=row["total_days"],
            linked_identities=linked,
            progress=[False] * row["total_days"],
            created_at=row["created_at"],
        )

    def list_habits(self) -> List[Habit]:
        try:
            result = self.client.table("habits")\
                .select("*")\
                .eq("user_id", self.user_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Database error fetching habits: {e}")
            raise DatabaseError(f"Failed to fetch habits: {e}")
        return [self._hydrate(row) for row in result.data]

    def get_habit(self, habit_id: int) -> Habit:
        return self._hydrate(self._get_habit_row(habit_id))

    def update_habit(self, habit_id: int, updates: Dict[str, Any]) -> Habit:
        habit = self.get_habit(habit_id)
        row_update: Dict[str, Any] = {}
        if updates.get("name") is not None:
            row_update["name"] = updates["name"]
        if updates.get("type") is not None:
            row_update["type"] = HabitType(updates["type"]).value
        if updates.get("total_days") is not None:
            total_days = int(updates["total_days"])
            if total_days < len(habit.progress):
                raise InvalidHabitDataError(
                    f"totalDays {total_days} would truncate {len(habit.progress)} days of progress"
                )
            row_update["total_days"] = total_days

        try:
            if row_update:
                row_update["updated_at"] = now_iso()
                self.client.table("habits")\
                    .update(row_update)\
                    .eq("id", habit_id)\
                    .eq("user_id", self.user_id)\
                    .execute()

            if updates.get("linked_identities") is not None:
                links = self._owned_identity_ids(updates["linked_identities"])
                self.client.table("habit_identities").delete().eq("habit_id", habit_id).execute()
                if links:
                    self.client.table("habit_identities").insert([
                        {"habit_id": habit_id, "identity_id": identity_id} for identity_id in links
                    ]).execute()
        except Exception as e:
            logger.error(f"Database error updating habit {habit_id}: {e}")
            raise DatabaseError(f"Failed to update habit: {e}")

        return self.get_habit(habit_id)

    def delete_habit(self, habit_id: int) -> None:
        try:
            result = self.client.table("habits")\
                .delete()\
                .eq("id", habit_id)\
                .eq("user_id", self.user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Database error deleting habit {habit_id}: {e}")
            raise DatabaseError(f"Failed to delete habit: {e}")
        if not result.data:
            raise HabitNotFoundError(f"Habit {habit_id} not found")

    def toggle_habit_day(self, habit_id: int, day_index: int) -> Habit:
        if day_index < 0:
            raise InvalidHabitDataError("day_index must be non-negative")
        row = self._get_habit_row(habit_id)
        try:
            current = self.client.table("habit_progress")\
                .select("completed")\
                .eq("habit_id", habit_id)\
                .eq("day_index", day_index)\
                .execute()
            completed = not (current.data and current.data[0].get("completed"))
            stamp = now_iso()
            self.client.table("habit_progress").upsert({
                "habit_id": habit_id,
                "day_index": day_index,
                "completed": completed,
                "completed_at": stamp if completed else None,
                "updated_at": stamp
            }, on_conflict="habit_id,day_index").execute()

            if day_index >= int(row["total_days"]):
                self.client.table("habits")\
                    .update({"total_days": day_index + 1, "updated_at": stamp})\
                    .eq("id", habit_id)\
                    .eq("user_id", self.user_id)\
                    .execute()
        except Exception as e:
            logger.error(f"Database error toggling habit {habit_id} day {day_index}: {e}")
            raise DatabaseError(f"Failed to toggle habit day: {e}")

        return self.get_habit(habit_id)

    # ===== SNAPSHOTS =====

    def import_data(self, json_data: str) -> bool:
        """Recreate snapshot records under this user; ids are reassigned by the database"""
        try:
            data = json.loads(json_data)
            if not isinstance(data, dict):
                return False
            snapshot = ExportSnapshot.model_validate({
                "identities": data.get("identities") or [],
                "habits": data.get("habits") or [],
                "exportedAt": data.get("exportedAt") or now_iso(),
                "version": data.get("version") or "unknown",
            })
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Import failed: {e}")
            return False

        id_map: Dict[int, int] = {}
        for identity in snapshot.identities:
            created = self.create_identity(identity.name, identity.description, identity.color)
            id_map[identity.id] = created.id

        for habit in snapshot.habits:
            linked = [id_map[i] for i in habit.linked_identities if i in id_map]
            created = self.create_habit(habit.name, habit.type, habit.total_days, linked)
            for day_index, done in enumerate(habit.progress):
                if done:
                    self.toggle_habit_day(created.id, day_index)
        logger.info(f"Imported {len(snapshot.identities)} identities and {len(snapshot.habits)} habits")
        return True

    # ===== HELPERS =====

    def _get_habit_row(self, habit_id: int) -> Dict[str, Any]:
        try:
            result = self.client.table("habits")\
                .select("*")\
                .eq("id", habit_id)\
                .eq("user_id", self.user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Database error fetching habit {habit_id}: {e}")
            raise DatabaseError(f"Failed to fetch habit: {e}")
        if not result.data:
            raise HabitNotFoundError(f"Habit {habit_id} not found")
        return result.data[0]

    def _hydrate(self, row: Dict[str, Any]) -> Habit:
        try:
            links = self.client.table("habit_identities")\
                .select("identity_id")\
                .eq("habit_id", row["id"])\
                .execute()
            progress_rows = self.client.table("habit_progress")\
                .select("day_index, completed")\
                .eq("habit_id", row["id"])\
                .order("day_index")\
                .execute()
        except Exception as e:
            logger.error(f"Database error loading habit {row['id']}: {e}")
            raise DatabaseError(f"Failed to load habit details: {e}")

        progress = build_progress(row["total_days"], progress_rows.data)
        return Habit(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            total_days=len(progress),
            linked_identities=[link["identity_id"] for link in links.data],
            progress=progress,
            created_at=row["created_at"],
        )


class AuthGateway:
    """Session passthrough to the hosted auth provider"""

    def __init__(self, client: Client):
        self.client = client

    @staticmethod
    def _session_response(response) -> SessionResponse:
        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        return SessionResponse(
            user_id=str(user.id) if user else None,
            email=getattr(user, "email", None),
            access_token=getattr(session, "access_token", None),
            refresh_token=getattr(session, "refresh_token", None),
        )

    def sign_up(self, email: str, password: str) -> SessionResponse:
        try:
            response = self.client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            logger.warning(f"Sign up failed for {email}: {e}")
            raise AuthenticationError(str(e))
        return self._session_response(response)

    def sign_in(self, email: str, password: str) -> SessionResponse:
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning(f"Sign in failed for {email}: {e}")
            raise AuthenticationError(str(e))
        return self._session_response(response)

    def sign_out(self, access_token: str) -> None:
        """Revoke the refresh tokens of the session behind access_token"""
        if not access_token:
            raise AuthenticationError("Missing access token")
        try:
            self.client.auth.admin.sign_out(access_token)
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            raise AuthenticationError(str(e))
