"""
Habits Repository - Centralized service-role database access layer
Supabase queries used by the notification and reporting endpoints
"""
from typing import List, Dict, Any, Optional
import logging

from supabase import Client

from habit_arc.core.constants import SUBSCRIPTION_FETCH_LIMIT
from habit_arc.core.exceptions import AuthenticationError, DatabaseError

logger = logging.getLogger(__name__)

USER_PREFS_COLUMNS = (
    "user_id, notif_enabled, notif_channel, notif_hour, notif_timezone, telegram_chat_id, "
    "telegram_username, whatsapp_number, last_notif_sent_at, weekly_email_enabled, "
    "weekly_email_day, weekly_email_hour"
)


class SupabaseRepository:
    """
    Repository over a service-role Supabase client

    Every method raises DatabaseError when the underlying query fails.
    """

    def __init__(self, client: Client):
        self.client = client

    # ========================================================================
    # AUTH
    # ========================================================================

    def get_user_id_for_token(self, token: str) -> str:
        """
        Resolve a bearer token to a user id

        Raises:
            AuthenticationError: If the token is missing or rejected
        """
        if not token:
            raise AuthenticationError("Missing bearer token")
        try:
            response = self.client.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token lookup failed: {e}")
            raise AuthenticationError("Invalid token")
        user = getattr(response, "user", None)
        if not user:
            raise AuthenticationError("Invalid token")
        return str(user.id)

    def get_user_email(self, user_id: str) -> Optional[str]:
        """Look up a user's email through the auth admin API"""
        try:
            response = self.client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            logger.error(f"Auth error fetching user {user_id}: {e}")
            raise DatabaseError(f"Failed to fetch user: {e}")
        user = getattr(response, "user", None)
        return getattr(user, "email", None)

    # ========================================================================
    # PUSH_SUBSCRIPTIONS TABLE
    # ========================================================================

    def list_push_subscriptions(self, limit: int = SUBSCRIPTION_FETCH_LIMIT) -> List[Dict[str, Any]]:
        """
        Get every stored push subscription

        Returns:
            List of {user_id, endpoint, subscription} rows
        """
        try:
            result = self.client.table("push_subscriptions")\
                .select("user_id, endpoint, subscription")\
                .limit(limit)\
                .execute()
            return result.data
        except Exception as e:
            logger.error(f"Database error fetching push subscriptions: {e}")
            raise DatabaseError(f"Failed to fetch push subscriptions: {e}")

    def list_user_push_subscriptions(self, user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get the push subscriptions of one user"""
        try:
            query = self.client.table("push_subscriptions")\
                .select("user_id, endpoint, subscription")\
                .eq("user_id", user_id)
            if limit:
                query = query.limit(limit)
            return query.execute().data
        except Exception as e:
            logger.error(f"Database error fetching push subscriptions for {user_id}: {e}")
            raise DatabaseError(f"Failed to fetch push subscriptions: {e}")

    def upsert_push_subscription(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert or update a subscription keyed by (user_id, endpoint)

        Args:
            row: push_subscriptions row
        """
        try:
            result = self.client.table("push_subscriptions")\
                .upsert(row, on_conflict="user_id,endpoint")\
                .execute()
            return result.data[0] if result.data else {}
        except Exception as e:
            logger.error(f"Database error saving push subscription: {e}")
            raise DatabaseError(f"Failed to save push subscription: {e}")

    def delete_push_subscription(self, user_id: str, endpoint: str) -> None:
        """Delete the subscription matching (user_id, endpoint)"""
        try:
            self.client.table("push_subscriptions")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("endpoint", endpoint)\
                .execute()
        except Exception as e:
            logger.error(f"Database error deleting push subscription for {user_id}: {e}")
            raise DatabaseError(f"Failed to delete push subscription: {e}")

    # ========================================================================
    # USER_PREFS TABLE
    # ========================================================================

    def get_user_prefs(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a user's notification preferences

        Returns:
            Prefs row or None if the user never saved any
        """
        try:
            result = self.client.table("user_prefs")\
                .select(USER_PREFS_COLUMNS)\
                .eq("user_id", user_id)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Database error fetching prefs for {user_id}: {e}")
            raise DatabaseError(f"Failed to fetch user prefs: {e}")

    def list_weekly_email_prefs(self) -> List[Dict[str, Any]]:
        """Get prefs of every user with weekly emails turned on"""
        try:
            result = self.client.table("user_prefs")\
                .select(USER_PREFS_COLUMNS)\
                .eq("weekly_email_enabled", True)\
                .execute()
            return result.data
        except Exception as e:
            logger.error(f"Database error fetching weekly email prefs: {e}")
            raise DatabaseError(f"Failed to fetch weekly email prefs: {e}")

    def mark_notification_sent(self, user_id: str, sent_at: str) -> None:
        """Stamp last_notif_sent_at for a user"""
        try:
            self.client.table("user_prefs")\
                .update({"last_notif_sent_at": sent_at})\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Database error stamping notification for {user_id}: {e}")
            raise DatabaseError(f"Failed to update user prefs: {e}")

    # ========================================================================
    # HABITS / IDENTITIES TABLES
    # ========================================================================

    def list_habits(self, user_id: str, columns: str = "*", oldest_first: bool = False,
                    limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Get a user's habits

        Args:
            user_id: Owner id
            columns: Column selection
            oldest_first: Order by created_at ascending instead of descending
            limit: Optional maximum number of rows
        """
        try:
            query = self.client.table("habits")\
                .select(columns)\
                .eq("user_id", user_id)\
                .order("created_at", desc=not oldest_first)
            if limit:
                query = query.limit(limit)
            return query.execute().data
        except Exception as e:
            logger.error(f"Database error fetching habits for {user_id}: {e}")
            raise DatabaseError(f"Failed to fetch habits: {e}")

    def list_identities(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's identities, newest first"""
        try:
            result = self.client.table("identities")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return result.data
        except Exception as e:
            logger.error(f"Database error fetching identities for {user_id}: {e}")
            raise DatabaseError(f"Failed to fetch identities: {e}")

    def get_linked_identity_names(self, habit_id: int) -> List[str]:
        """Names of the identities linked to a habit"""
        try:
            result = self.client.table("habit_identities")\
                .select("identity_id, identities(name)")\
                .eq("habit_id", habit_id)\
                .execute()
        except Exception as e:
            logger.error(f"Database error fetching identity names for habit {habit_id}: {e}")
            raise DatabaseError(f"Failed to fetch identity names: {e}")
        names = []
        for row in result.data:
            identity = row.get("identities") or {}
            if identity.get("name"):
                names.append(identity["name"])
        return names

    # ========================================================================
    # HABIT_PROGRESS TABLE
    # ========================================================================

    def get_progress_for_habit(self, habit_id: int) -> List[Dict[str, Any]]:
        """All progress rows of a habit ordered by day_index"""
        try:
            result = self.client.table("habit_progress")\
                .select("day_index, completed")\
                .eq("habit_id", habit_id)\
                .order("day_index")\
                .execute()
            return result.data
        except Exception as e:
            logger.error(f"Database error fetching progress for habit {habit_id}: {e}")
            raise DatabaseError(f"Failed to fetch progress: {e}")

    def get_progress_for_day(self, habit_ids: List[int], day_index: int) -> List[Dict[str, Any]]:
        """
        Progress rows of several habits on one day

        Returns:
            List of {habit_id, completed} rows
        """
        if not habit_ids:
            return []
        try:
            result = self.client.table("habit_progress")\
                .select("habit_id, completed")\
                .eq("day_index", day_index)\
                .in_("habit_id", habit_ids)\
                .execute()
            return result.data
        except Exception as e:
            logger.error(f"Database error fetching progress for day {day_index}: {e}")
            raise DatabaseError(f"Failed to fetch progress: {e}")

    def count_completed_progress(self, habit_ids: List[int]) -> int:
        """Number of completed progress rows across habits"""
        if not habit_ids:
            return 0
        try:
            result = self.client.table("habit_progress")\
                .select("id", count="exact")\
                .eq("completed", True)\
                .in_("habit_id", habit_ids)\
                .execute()
            return result.count or 0
        except Exception as e:
            logger.error(f"Database error counting progress: {e}")
            raise DatabaseError(f"Failed to count progress: {e}")
