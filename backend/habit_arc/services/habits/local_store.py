"""
Local Habit Store - file-backed persistence for single-user deployments
Identities and habits live as JSON text under two keys of a key-value file.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import time

from pydantic import ValidationError

from habit_arc.core.constants import DEFAULT_IDENTITY_COLOR, HABITS_KEY, IDENTITIES_KEY
from habit_arc.core.exceptions import (
    DatabaseError,
    HabitNotFoundError,
    IdentityNotFoundError,
    InvalidHabitDataError
)
from habit_arc.models.habit import ExportSnapshot, Habit, HabitType, Identity, now_iso
from .progress import toggle_progress
from .store import HabitStore

logger = logging.getLogger(__name__)


class KeyValueFile:
    """
    Minimal key-value blob persisted as a single JSON object

    Values are stored as text, mirroring browser localStorage.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read local store {self.path}: {e}")
            raise DatabaseError(f"Failed to read local store: {e}")
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to write local store {self.path}: {e}")
            raise DatabaseError(f"Failed to write local store: {e}")

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class LocalHabitStore(HabitStore):
    """HabitStore backed by a KeyValueFile"""

    def __init__(self, storage: KeyValueFile):
        self.storage = storage

    # ===== IDENTITIES =====

    def create_identity(self, name: str, description: Optional[str] = None,
                        color: Optional[str] = None) -> Identity:
        identities = self.list_identities()
        identity = Identity(
            id=self._next_id(),
            name=name,
            description=description,
            color=color or DEFAULT_IDENTITY_COLOR,
            created_at=now_iso(),
        )
        identities.append(identity)
        self._save_identities(identities)
        logger.info(f"Created identity {identity.id}: {name}")
        return identity

    def list_identities(self) -> List[Identity]:
        return [Identity.model_validate(item) for item in self._load(IDENTITIES_KEY)]

    def update_identity(self, identity_id: int, name: str, description: Optional[str] = None) -> Identity:
        identities = self.list_identities()
        for i, identity in enumerate(identities):
            if identity.id == identity_id:
                identities[i] = identity.model_copy(update={"name": name, "description": description})
                self._save_identities(identities)
                return identities[i]
        raise IdentityNotFoundError(f"Identity {identity_id} not found")

    def delete_identity(self, identity_id: int) -> None:
        identities = self.list_identities()
        remaining = [i for i in identities if i.id != identity_id]
        if len(remaining) == len(identities):
            raise IdentityNotFoundError(f"Identity {identity_id} not found")
        self._save_identities(remaining)

        # Unlink from habits, progress is left untouched
        habits = [
            h.model_copy(update={"linked_identities": [i for i in h.linked_identities if i != identity_id]})
            for h in self.list_habits()
        ]
        self._save_habits(habits)
        logger.info(f"Deleted identity {identity_id} and unlinked it from {len(habits)} habit(s)")

    # ===== HABITS =====

    def create_habit(self, name: str, habit_type: HabitType, total_days: int,
                     linked_identities: List[int]) -> Habit:
        habits = self.list_habits()
        habit = Habit(
            id=self._next_id(),
            name=name,
            type=habit_type,
            total_days=total_days,
            linked_identities=list(dict.fromkeys(linked_identities)),
            progress=[False] * total_days,
            created_at=now_iso(),
        )
        habits.append(habit)
        self._save_habits(habits)
        logger.info(f"Created habit {habit.id}: {name} ({total_days} days)")
        return habit

    def list_habits(self) -> List[Habit]:
        return [Habit.model_validate(item) for item in self._load(HABITS_KEY)]

    def get_habit(self, habit_id: int) -> Habit:
        for habit in self.list_habits():
            if habit.id == habit_id:
                return habit
        raise HabitNotFoundError(f"Habit {habit_id} not found")

    def update_habit(self, habit_id: int, updates: Dict[str, Any]) -> Habit:
        habits = self.list_habits()
        for i, habit in enumerate(habits):
            if habit.id == habit_id:
                habits[i] = apply_habit_updates(habit, updates)
                self._save_habits(habits)
                return habits[i]
        raise HabitNotFoundError(f"Habit {habit_id} not found")

    def delete_habit(self, habit_id: int) -> None:
        habits = self.list_habits()
        remaining = [h for h in habits if h.id != habit_id]
        if len(remaining) == len(habits):
            raise HabitNotFoundError(f"Habit {habit_id} not found")
        self._save_habits(remaining)

    def toggle_habit_day(self, habit_id: int, day_index: int) -> Habit:
        habits = self.list_habits()
        for i, habit in enumerate(habits):
            if habit.id == habit_id:
                progress = toggle_progress(habit.progress, day_index)
                habits[i] = habit.model_copy(update={"progress": progress, "total_days": len(progress)})
                self._save_habits(habits)
                return habits[i]
        raise HabitNotFoundError(f"Habit {habit_id} not found")

    # ===== SNAPSHOTS =====

    def import_data(self, json_data: str) -> bool:
        try:
            raw = json.loads(json_data)
            if not isinstance(raw, dict):
                return False
            snapshot = ExportSnapshot.model_validate({
                "identities": raw.get("identities") or [],
                "habits": raw.get("habits") or [],
                "exportedAt": raw.get("exportedAt") or now_iso(),
                "version": raw.get("version") or "unknown",
            })
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Import failed: {e}")
            return False

        if isinstance(raw.get("identities"), list):
            self._save_identities(snapshot.identities)
        if isinstance(raw.get("habits"), list):
            self._save_habits(snapshot.habits)
        logger.info(f"Imported {len(snapshot.identities)} identities and {len(snapshot.habits)} habits")
        return True

    def clear_all(self) -> None:
        """Remove every stored identity and habit"""
        self.storage.remove_item(IDENTITIES_KEY)
        self.storage.remove_item(HABITS_KEY)

    # ===== HELPERS =====

    def _load(self, key: str) -> List[Dict[str, Any]]:
        stored = self.storage.get_item(key)
        if not stored:
            return []
        try:
            return json.loads(stored)
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Corrupt local data under '{key}': {e}")

    def _save_identities(self, identities: List[Identity]) -> None:
        payload = [i.model_dump(mode="json", by_alias=True) for i in identities]
        self.storage.set_item(IDENTITIES_KEY, json.dumps(payload, ensure_ascii=False))

    def _save_habits(self, habits: List[Habit]) -> None:
        payload = [h.model_dump(mode="json", by_alias=True) for h in habits]
        self.storage.set_item(HABITS_KEY, json.dumps(payload, ensure_ascii=False))

    def _next_id(self) -> int:
        """Millisecond timestamp, bumped past every id already stored"""
        existing = [i.id for i in self.list_identities()] + [h.id for h in self.list_habits()]
        candidate = int(time.time() * 1000)
        if existing and candidate <= max(existing):
            candidate = max(existing) + 1
        return candidate


def apply_habit_updates(habit: Habit, updates: Dict[str, Any]) -> Habit:
    """
    Merge an update dict into a habit

    Growing total_days pads progress with False; shrinking below the
    recorded progress is rejected since progress is never truncated.

    Raises:
        InvalidHabitDataError: If total_days would truncate progress
    """
    changes: Dict[str, Any] = {}
    if updates.get("name") is not None:
        changes["name"] = updates["name"]
    if updates.get("type") is not None:
        changes["type"] = HabitType(updates["type"])
    if updates.get("linked_identities") is not None:
        changes["linked_identities"] = list(dict.fromkeys(updates["linked_identities"]))
    if updates.get("total_days") is not None:
        total_days = int(updates["total_days"])
        if total_days < len(habit.progress):
            raise InvalidHabitDataError(
                f"totalDays {total_days} would truncate {len(habit.progress)} days of progress"
            )
        changes["total_days"] = total_days
        changes["progress"] = list(habit.progress) + [False] * (total_days - len(habit.progress))
    return habit.model_copy(update=changes)
