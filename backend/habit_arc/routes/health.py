"""
Health Routes - Health check endpoints
"""
import platform

from fastapi import APIRouter

from habit_arc.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "message": "Server is alive"}


@router.get("/api/health")
async def deployment_health():
    """Liveness plus which secrets are present (values are never returned)"""
    return {
        "ok": True,
        "python": platform.python_version(),
        "env": {
            "SUPABASE_URL": bool(settings.SUPABASE_URL),
            "SUPABASE_SERVICE_ROLE_KEY": bool(settings.SUPABASE_SERVICE_ROLE_KEY),
            "VAPID_PUBLIC_KEY": bool(settings.VAPID_PUBLIC_KEY),
            "VAPID_PRIVATE_KEY": bool(settings.VAPID_PRIVATE_KEY),
            "CRON_SECRET": bool(settings.CRON_SECRET),
        },
    }
