"""
Notifications Service - Message formatting and delivery outcomes
Centralizes all notification message templates
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import logging

from habit_arc.core.config import settings
from habit_arc.core.constants import MAX_CHANNEL_REMINDER_HABITS, MAX_PUSH_REMINDER_NAMES
from habit_arc.models.notifications import PushPayload
from habit_arc.utils.timezone import get_local_now

logger = logging.getLogger(__name__)


# ============================================================================
# DELIVERY OUTCOMES
# ============================================================================

SENT = "sent"
GONE = "gone"
FAILED = "failed"


@dataclass
class DeliveryOutcome:
    """Result of one delivery attempt to one target"""
    target: str
    status: str
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SENT


@dataclass
class UserFanoutResult:
    """What happened for one user during a scheduled fan-out"""
    user_id: str
    skipped_reason: Optional[str] = None
    remaining: int = 0
    outcomes: List[DeliveryOutcome] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)


# ============================================================================
# MESSAGE FORMATTING
# ============================================================================

def format_push_reminder(remaining_names: Sequence[str]) -> PushPayload:
    """
    Format the daily push reminder

    Args:
        remaining_names: Names of active habits not yet completed today

    Returns:
        Push payload naming up to three habits with a "+N" suffix, or a
        day-complete message when nothing remains
    """
    if not remaining_names:
        return PushPayload(
            title="Habit Arc — Day complete",
            body="Everything is checked off for today.",
        )

    shown = list(remaining_names[:MAX_PUSH_REMINDER_NAMES])
    more = len(remaining_names) - len(shown)
    body = f"Remaining: {', '.join(shown)}"
    if more > 0:
        body += f" (+{more})"
    return PushPayload(
        title=f"Habit Arc — {len(remaining_names)} remaining",
        body=body,
    )


def format_test_push() -> PushPayload:
    """Fixed payload sent by the push test endpoint"""
    return PushPayload(
        title="Habit Arc — Web Push test",
        body="Web Push is active: you can receive reminders even with the app closed.",
    )


def format_local_time(now: datetime, tz_name: str) -> str:
    """HH:MM in the user's timezone"""
    return get_local_now(tz_name, now).strftime("%H:%M")


def format_channel_reminder(habits: Sequence[Dict[str, Any]], tz_name: str,
                            now: Optional[datetime] = None) -> str:
    """
    Format the Telegram/WhatsApp reminder

    Args:
        habits: Habit rows with 'name' and 'type', oldest first
        tz_name: User timezone used for the time line
        now: Optional reference instant

    Returns:
        Multi-line reminder listing up to five habits
    """
    now = now or datetime.now().astimezone()
    lines = [
        "✨ Habit Arc reminder",
        f"🕒 It's {format_local_time(now, tz_name)} ({tz_name}), a good moment to anchor your habits.",
    ]

    if habits:
        lines.extend(["", "🎯 Focus on:"])
        for index, habit in enumerate(habits[:MAX_CHANNEL_REMINDER_HABITS], start=1):
            label = "to reduce" if habit.get("type") == "stop" else "to reinforce"
            lines.append(f"{index}. {habit['name']} ({label})")
    else:
        lines.extend([
            "",
            "You don't have an active habit yet. Add one in the app to get targeted reminders."
        ])

    lines.extend(["", f"✅ Update your progress: {settings.APP_URL}"])
    return "\n".join(lines)
