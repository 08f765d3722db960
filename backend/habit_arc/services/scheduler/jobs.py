"""
Scheduler Job Definitions
Hourly push reminder fan-out and weekly summary emails
"""
from datetime import datetime
from typing import Optional
import logging

from habit_arc.core import dependencies
from habit_arc.services.external.email import EmailSender, is_email_configured
from habit_arc.services.external.webpush import WebPushSender, is_webpush_configured
from habit_arc.services.habits.remote_store import RemoteHabitStore
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.notifications.push import run_push_fanout
from habit_arc.services.reports.weekly import send_weekly_summaries
from habit_arc.utils.timezone import get_utc_now

logger = logging.getLogger(__name__)


def send_push_reminders(repository: SupabaseRepository, now: Optional[datetime] = None):
    """
    Run the Web Push reminder fan-out
    Skipped when VAPID keys are not configured
    """
    if not is_webpush_configured():
        logger.warning("[SCHEDULER] VAPID keys missing, push reminders disabled")
        return None

    try:
        logger.info("[SCHEDULER] Running push reminder fan-out...")
        result = run_push_fanout(repository, WebPushSender(), now=now)
        logger.info(f"[SCHEDULER] Push fan-out sent {result['sent']} notification(s)")
        return result
    except Exception as e:
        logger.error(f"[SCHEDULER] Error in push fan-out: {e}", exc_info=True)
        return None


def send_weekly_emails(repository: SupabaseRepository, now: Optional[datetime] = None):
    """
    Send weekly summaries to users whose slot is this hour
    Skipped when the email provider is not configured
    """
    if not is_email_configured():
        logger.warning("[SCHEDULER] Email provider not configured, weekly summaries disabled")
        return None

    try:
        logger.info("[SCHEDULER] Checking weekly summaries...")
        client = repository.client
        return send_weekly_summaries(
            repository,
            EmailSender(),
            lambda user_id: RemoteHabitStore(client, user_id),
            now=now
        )
    except Exception as e:
        logger.error(f"[SCHEDULER] Error sending weekly summaries: {e}", exc_info=True)
        return None


def run_hourly_jobs():
    """
    Run every hourly job
    Called at the top of each hour by the scheduler
    """
    now = get_utc_now()
    try:
        repository = SupabaseRepository(dependencies.get_supabase_client())
    except Exception as e:
        logger.error(f"[SCHEDULER] Supabase unavailable: {e}")
        return

    send_push_reminders(repository, now)
    send_weekly_emails(repository, now)
