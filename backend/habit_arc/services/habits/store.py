"""
Habit store interface - entity operations shared by the local and remote adapters
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import json
import logging

from habit_arc.core.config import settings
from habit_arc.core.constants import EXPORT_VERSION
from habit_arc.core.exceptions import ConfigurationError
from habit_arc.models.habit import ExportSnapshot, Habit, HabitType, Identity, StoreStats, now_iso

logger = logging.getLogger(__name__)


class HabitStore(ABC):
    """
    Data-access interface for a single user's identities and habits

    Implementations raise HabitNotFoundError / IdentityNotFoundError for
    unknown ids and DatabaseError for storage failures.
    """

    # ===== IDENTITIES =====

    @abstractmethod
    def create_identity(self, name: str, description: Optional[str] = None,
                        color: Optional[str] = None) -> Identity:
        ...

    @abstractmethod
    def list_identities(self) -> List[Identity]:
        ...

    @abstractmethod
    def update_identity(self, identity_id: int, name: str, description: Optional[str] = None) -> Identity:
        ...

    @abstractmethod
    def delete_identity(self, identity_id: int) -> None:
        """Delete an identity and unlink it from every habit"""

    # ===== HABITS =====

    @abstractmethod
    def create_habit(self, name: str, habit_type: HabitType, total_days: int,
                     linked_identities: List[int]) -> Habit:
        ...

    @abstractmethod
    def list_habits(self) -> List[Habit]:
        ...

    @abstractmethod
    def get_habit(self, habit_id: int) -> Habit:
        ...

    @abstractmethod
    def update_habit(self, habit_id: int, updates: Dict[str, Any]) -> Habit:
        """Apply name/type/total_days/linked_identities updates"""

    @abstractmethod
    def delete_habit(self, habit_id: int) -> None:
        ...

    @abstractmethod
    def toggle_habit_day(self, habit_id: int, day_index: int) -> Habit:
        """Flip one day, extending progress when day_index is past the end"""

    # ===== SNAPSHOTS =====

    @abstractmethod
    def import_data(self, json_data: str) -> bool:
        """Load a snapshot produced by export_data; False when it cannot be parsed"""

    def get_stats(self) -> StoreStats:
        """Count identities, habits and completed days"""
        habits = self.list_habits()
        return StoreStats(
            identities=len(self.list_identities()),
            habits=len(habits),
            total_progress=sum(sum(1 for p in h.progress if p) for h in habits),
        )

    def export_data(self) -> str:
        """Serialise every identity and habit to a JSON snapshot"""
        snapshot = ExportSnapshot(
            identities=self.list_identities(),
            habits=self.list_habits(),
            exported_at=now_iso(),
            version=EXPORT_VERSION,
        )
        return json.dumps(snapshot.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)


def get_habit_store(user_id: Optional[str] = None, client=None) -> HabitStore:
    """
    Build the store selected by settings.DATA_BACKEND

    Args:
        user_id: Authenticated user id, required for the remote backend
        client: Supabase client, required for the remote backend

    Raises:
        ConfigurationError: If the backend name is unknown or inputs are missing
    """
    backend = settings.DATA_BACKEND

    if backend == "local":
        from .local_store import KeyValueFile, LocalHabitStore
        return LocalHabitStore(KeyValueFile(settings.LOCAL_DATA_PATH))

    if backend == "remote":
        if client is None or not user_id:
            raise ConfigurationError("Remote store requires a Supabase client and a user id")
        from .remote_store import RemoteHabitStore
        return RemoteHabitStore(client, user_id)

    raise ConfigurationError(f"Unknown DATA_BACKEND '{settings.DATA_BACKEND}'")
