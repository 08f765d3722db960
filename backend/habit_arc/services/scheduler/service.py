"""
Scheduler Service - Background scheduler lifecycle management
Handles starting, stopping, and configuring the APScheduler instance
"""
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from habit_arc.core.constants import SCHEDULER_RUN_MINUTE
from .jobs import run_hourly_jobs

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def start_scheduler():
    """
    Start the background scheduler
    Runs the hourly reminder and weekly summary checks at the top of every hour (UTC)
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    scheduler = BackgroundScheduler(timezone="UTC")

    # Reminder hours are matched per user timezone, so the job fires every hour
    scheduler.add_job(
        func=run_hourly_jobs,
        trigger=CronTrigger(minute=SCHEDULER_RUN_MINUTE, timezone="UTC"),
        id='hourly_notifications',
        name='Push reminders and weekly summaries',
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"Scheduler started - running every hour at minute {SCHEDULER_RUN_MINUTE:02d}")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")
