"""
Coach Service - read-only aggregation of a user's habits for external coaching tools
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import random

from habit_arc.core.constants import MAX_TOP_STREAKS
from habit_arc.models.notifications import UserPrefs
from habit_arc.services.habits.progress import completed_count, completion_rate, current_streak
from habit_arc.services.habits.remote_store import build_progress
from habit_arc.utils.timezone import get_day_index, get_local_hour, get_local_today, get_utc_now, is_habit_active

logger = logging.getLogger(__name__)

MOTIVATIONAL_QUOTES = [
    "💭 'Success is the sum of small efforts, repeated day in and day out.' - Robert Collier",
    "💭 'You don't have to be great to start, but you have to start to be great.'",
    "💭 'Discipline is the bridge between goals and accomplishment.'",
    "💭 'Every day is a new opportunity to become better.'",
    "💭 'Small daily wins lead to big transformations.'",
]


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def _user_timezone(repository, user_id: str) -> str:
    return UserPrefs.from_row(repository.get_user_prefs(user_id)).notif_timezone


def get_habits_report(repository, user_id: str) -> List[Dict[str, Any]]:
    """
    Every habit of a user with its progress and derived stats

    Returns:
        Newest-first list of habit dicts with camelCase keys
    """
    report = []
    for habit in repository.list_habits(user_id):
        progress = build_progress(habit.get("total_days") or 0, repository.get_progress_for_habit(habit["id"]))
        total_days = habit.get("total_days") or 0
        report.append({
            "id": habit["id"],
            "name": habit["name"],
            "type": habit["type"],
            "totalDays": total_days,
            "progress": progress,
            "currentStreak": current_streak(progress),
            "completionRate": completion_rate(progress, total_days),
            "linkedIdentities": repository.get_linked_identity_names(habit["id"]),
            "createdAt": habit["created_at"],
        })
    return report


def get_stats_report(repository, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Global counters for a user

    activeHabits counts habits whose window covers today in the user's timezone.
    """
    now = now or get_utc_now()
    tz_name = _user_timezone(repository, user_id)
    day_index = get_day_index(tz_name, now)

    habits = repository.list_habits(user_id, columns="id, name, total_days, created_at")
    total_progress = repository.count_completed_progress([h["id"] for h in habits])
    total_possible = sum(h.get("total_days") or 0 for h in habits)
    active = [
        h for h in habits
        if is_habit_active(h["created_at"], h.get("total_days") or 0, day_index, tz_name)
    ]
    identities = [
        {"id": row["id"], "name": row["name"], "description": row.get("description")}
        for row in repository.list_identities(user_id)
    ]
    return {
        "totalHabits": len(habits),
        "activeHabits": len(active),
        "totalProgress": total_progress,
        "overallCompletionRate": _percent(total_progress, total_possible),
        "identities": identities,
    }


def get_today_report(repository, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Completion of today's active habits

    Today is the local date in the user's notification timezone.
    """
    now = now or get_utc_now()
    tz_name = _user_timezone(repository, user_id)
    day_index = get_day_index(tz_name, now)

    habits = repository.list_habits(user_id, columns="id, name, type, total_days, created_at")
    active = [
        h for h in habits
        if is_habit_active(h["created_at"], h.get("total_days") or 0, day_index, tz_name)
    ]
    progress = repository.get_progress_for_day([h["id"] for h in active], day_index)
    done = {p["habit_id"] for p in progress if p.get("completed")}

    today_habits = [
        {"id": h["id"], "name": h["name"], "type": h["type"], "completed": h["id"] in done}
        for h in active
    ]
    habits_completed = completed_count([h["completed"] for h in today_habits])
    return {
        "date": get_local_today(tz_name, now).isoformat(),
        "dayIndex": day_index,
        "habitsTotal": len(today_habits),
        "habitsCompleted": habits_completed,
        "completionRate": _percent(habits_completed, len(today_habits)),
        "todayHabits": today_habits,
    }


def _greeting(hour: int) -> str:
    if hour < 12:
        return "☀️ Good morning! "
    if hour < 18:
        return "🌤️ Good afternoon! "
    return "🌙 Good evening! "


def _completion_sentence(rate: float) -> str:
    if rate == 100:
        return "Incredible! You completed every habit today! 🎉"
    if rate >= 70:
        return f"Excellent work! You're at {rate}% today. Keep it up! 💪"
    if rate >= 40:
        return f"Good start! {rate}% done. You can do even better! 🚀"
    if rate > 0:
        return f"It's a start! {rate}% done. Every small step counts! 🌱"
    return "The day is just beginning! Let's go together! 💫"


def build_motivation(repository, user_id: str, now: Optional[datetime] = None,
                     rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """
    Compose the coach's motivational message

    Args:
        repository: SupabaseRepository (or compatible)
        user_id: Target user
        now: Reference instant, defaults to the current time
        rng: Random source for the quote, so callers can seed it

    Returns:
        {message, stats} where stats carries the numbers behind the text
    """
    now = now or get_utc_now()
    rng = rng or random.Random()
    tz_name = _user_timezone(repository, user_id)

    today = get_today_report(repository, user_id, now)
    habits = get_habits_report(repository, user_id)

    top_streaks = [
        h for h in sorted(habits, key=lambda h: h["currentStreak"], reverse=True)[:MAX_TOP_STREAKS]
        if h["currentStreak"] > 0
    ]

    lines = ["🌟 Habit Arc Coach", ""]
    lines.append(_greeting(get_local_hour(tz_name, now)) + _completion_sentence(today["completionRate"]))
    lines.append("")

    incomplete = [h for h in today["todayHabits"] if not h["completed"]]
    if incomplete:
        lines.append("📋 Today's habits:")
        for habit in incomplete:
            emoji = "✅" if habit["type"] == "start" else "🛑"
            lines.append(f"{emoji} {habit['name']}")
        lines.append("")

    if top_streaks:
        lines.append("🔥 Your best streaks:")
        for habit in top_streaks:
            lines.append(f"• {habit['name']}: {habit['currentStreak']} days 🔥")
        lines.append("")

    lines.append(rng.choice(MOTIVATIONAL_QUOTES))

    return {
        "message": "\n".join(lines),
        "stats": {
            "completionRate": today["completionRate"],
            "habitsCompleted": today["habitsCompleted"],
            "habitsTotal": today["habitsTotal"],
            "topStreaks": [{"name": h["name"], "streak": h["currentStreak"]} for h in top_streaks],
        },
    }
