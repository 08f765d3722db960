"""
Push notifications - subscription management and the scheduled reminder fan-out
"""
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from habit_arc.core.constants import (
    PUSH_DELIVERY_MAX_WORKERS,
    SUBSCRIPTION_FETCH_LIMIT,
    TEST_PUSH_SUBSCRIPTION_LIMIT
)
from habit_arc.core.exceptions import InvalidRequestError
from habit_arc.models.habit import now_iso
from habit_arc.models.notifications import PushPayload, PushSubscriptionPayload, UserPrefs
from habit_arc.utils.timezone import get_day_index, get_local_hour, get_utc_now, is_habit_active
from .service import (
    DeliveryOutcome,
    FAILED,
    GONE,
    UserFanoutResult,
    format_push_reminder,
    format_test_push
)

logger = logging.getLogger(__name__)


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

def register_subscription(repository, user_id: str, subscription: Optional[PushSubscriptionPayload],
                          user_agent: Optional[str] = None) -> Dict[str, Any]:
    """
    Store a browser push subscription for a user

    Raises:
        InvalidRequestError: If the subscription has no endpoint
    """
    if subscription is None or not subscription.endpoint:
        raise InvalidRequestError("Missing subscription")

    repository.upsert_push_subscription({
        "user_id": user_id,
        "endpoint": subscription.endpoint,
        "p256dh": subscription.keys.p256dh,
        "auth": subscription.keys.auth,
        "subscription": subscription.model_dump(exclude_none=True),
        "user_agent": user_agent,
        "updated_at": now_iso()
    })
    logger.info(f"[PUSH] Subscription saved for user {user_id}")
    return {"ok": True}


def remove_subscription(repository, user_id: str, endpoint: Optional[str]) -> Dict[str, Any]:
    """
    Delete a user's subscription by endpoint

    Raises:
        InvalidRequestError: If no endpoint is given
    """
    if not endpoint:
        raise InvalidRequestError("Missing endpoint")
    repository.delete_push_subscription(user_id, endpoint)
    logger.info(f"[PUSH] Subscription removed for user {user_id}")
    return {"ok": True}


def deliver_to_subscriptions(sender, subscriptions: List[Dict[str, Any]],
                             payload: PushPayload) -> List[DeliveryOutcome]:
    """
    Deliver one payload to several subscriptions concurrently

    Each delivery is independent: an exception from one target becomes a
    'failed' outcome and never aborts the others.

    Returns:
        One outcome per subscription, in input order
    """
    if not subscriptions:
        return []

    def _attempt(row: Dict[str, Any]) -> DeliveryOutcome:
        try:
            return sender.send(row["subscription"], payload)
        except Exception as e:
            logger.error(f"[PUSH] Delivery to {row.get('endpoint', '')[:60]} raised: {e}")
            return DeliveryOutcome(target=row.get("endpoint", ""), status=FAILED, error=str(e))

    workers = min(PUSH_DELIVERY_MAX_WORKERS, len(subscriptions))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_attempt, subscriptions))


def send_test_push(repository, sender, user_id: str) -> Dict[str, Any]:
    """
    Send the fixed test payload to a user's subscriptions

    Raises:
        InvalidRequestError: If the user has no stored subscription
    """
    subscriptions = repository.list_user_push_subscriptions(user_id, limit=TEST_PUSH_SUBSCRIPTION_LIMIT)
    if not subscriptions:
        raise InvalidRequestError("No subscription found.")

    outcomes = deliver_to_subscriptions(sender, subscriptions, format_test_push())
    sent = sum(1 for o in outcomes if o.ok)
    logger.info(f"[PUSH] Test push for {user_id}: {sent}/{len(outcomes)} delivered")
    return {"ok": True, "sent": sent}


# ============================================================================
# SCHEDULED FAN-OUT
# ============================================================================

def group_by_user(subscriptions: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """Group subscription rows by user_id, keeping first-seen order"""
    grouped: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for row in subscriptions:
        grouped.setdefault(row["user_id"], []).append(row)
    return grouped


def is_due(prefs: UserPrefs, now: datetime) -> bool:
    """True when reminders are enabled and it is the user's reminder hour locally"""
    if not prefs.notif_enabled:
        return False
    return get_local_hour(prefs.notif_timezone, now) == prefs.notif_hour


def remaining_habits_for_today(repository, user_id: str, tz_name: str, now: datetime) -> Optional[List[str]]:
    """
    Names of habits active today that are not completed yet

    Returns:
        List of names (possibly empty), or None when no habit is active today
    """
    day_index = get_day_index(tz_name, now)
    habits = repository.list_habits(user_id, columns="id, name, total_days, created_at", oldest_first=True)
    active = [
        h for h in habits
        if is_habit_active(h["created_at"], h.get("total_days") or 0, day_index, tz_name)
    ]
    if not active:
        return None

    progress = repository.get_progress_for_day([h["id"] for h in active], day_index)
    done = {p["habit_id"] for p in progress if p.get("completed")}
    return [h["name"] for h in active if h["id"] not in done]


def process_user(repository, sender, user_id: str, subscriptions: List[Dict[str, Any]],
                 now: datetime) -> UserFanoutResult:
    """Run eligibility, build the reminder and deliver it for one user"""
    result = UserFanoutResult(user_id=user_id)

    prefs = UserPrefs.from_row(repository.get_user_prefs(user_id))
    if not prefs.notif_enabled:
        result.skipped_reason = "disabled"
        return result
    if not is_due(prefs, now):
        result.skipped_reason = "not-due"
        return result

    remaining = remaining_habits_for_today(repository, user_id, prefs.notif_timezone, now)
    if remaining is None:
        result.skipped_reason = "no-active-habits"
        return result

    result.remaining = len(remaining)
    payload = format_push_reminder(remaining)
    result.outcomes = deliver_to_subscriptions(sender, subscriptions, payload)

    for row, outcome in zip(subscriptions, result.outcomes):
        if outcome.status == GONE:
            try:
                repository.delete_push_subscription(user_id, row["endpoint"])
                logger.info(f"[PUSH CRON] Removed stale subscription for {user_id}")
            except Exception as e:
                logger.error(f"[PUSH CRON] Failed to remove stale subscription for {user_id}: {e}")
    return result


def run_push_fanout(repository, sender, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Send the daily reminder to every user whose local reminder hour is now

    Users are processed sequentially; a failure for one user is logged and
    the run moves on to the next.

    Returns:
        Dict with ok, sent (successful deliveries) and per-user results
    """
    now = now or get_utc_now()
    subscriptions = repository.list_push_subscriptions(limit=SUBSCRIPTION_FETCH_LIMIT)
    if not subscriptions:
        return {"ok": True, "sent": 0, "users": []}

    results: List[UserFanoutResult] = []
    for user_id, user_subs in group_by_user(subscriptions).items():
        try:
            result = process_user(repository, sender, user_id, user_subs, now)
        except Exception as e:
            logger.error(f"[PUSH CRON] Error processing user {user_id}: {e}", exc_info=True)
            result = UserFanoutResult(user_id=user_id, skipped_reason=f"error: {e}")
        results.append(result)

    sent = sum(r.sent for r in results)
    logger.info(f"[PUSH CRON] {len(results)} user(s) checked, {sent} notification(s) sent")
    return {"ok": True, "sent": sent, "users": results}
