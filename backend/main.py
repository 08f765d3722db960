"""
FastAPI Application Entry Point
"""
from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from habit_arc.core.config import settings
from habit_arc.core.exceptions import register_exception_handlers
from habit_arc.routes import auth, coach, data, health, notifications, push, reports
from habit_arc.services.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Silence noisy third-party loggers
logging.getLogger('httpx').setLevel(logging.WARNING)
logging.getLogger('httpcore').setLevel(logging.WARNING)
logging.getLogger('hpack').setLevel(logging.WARNING)
logging.getLogger('apscheduler.scheduler').setLevel(logging.WARNING)
logging.getLogger('apscheduler.executors').setLevel(logging.WARNING)
logging.getLogger('apscheduler.executors.default').setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup/shutdown events
    """
    # Startup
    if settings.SCHEDULER_ENABLED:
        try:
            start_scheduler()
            logger.info("✓ Notification scheduler started")
        except Exception as e:
            logger.warning(f"Could not start scheduler: {e}")
    else:
        logger.info("Scheduler disabled, relying on /api/push/cron")

    yield

    # Shutdown
    if settings.SCHEDULER_ENABLED:
        try:
            stop_scheduler()
            logger.info("✓ Notification scheduler stopped")
        except Exception as e:
            logger.warning(f"Error stopping scheduler: {e}")


# Initialize FastAPI app with lifespan
app = FastAPI(
    title="Habit Arc API",
    version="0.1.0",
    lifespan=lifespan
)

register_exception_handlers(app)

# Register routes
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(data.router)
app.include_router(push.router)
app.include_router(notifications.router)
app.include_router(coach.router)
app.include_router(reports.router)
