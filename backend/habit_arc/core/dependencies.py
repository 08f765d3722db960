"""
Dependency injection for shared clients and resources
"""
from functools import lru_cache
from typing import Optional
import logging

from fastapi import Depends, Header, HTTPException, Query
from supabase import create_client, Client

from habit_arc.core.config import settings
from habit_arc.core.exceptions import AuthenticationError, ConfigurationError
from habit_arc.services.external.email import EmailSender
from habit_arc.services.external.webpush import WebPushSender
from habit_arc.services.habits.remote_store import AuthGateway
from habit_arc.services.habits.repository import SupabaseRepository
from habit_arc.services.habits.store import HabitStore, get_habit_store as build_habit_store
from habit_arc.services.notifications.channels import ChannelTransports

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Get the service-role Supabase client instance"""
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ConfigurationError("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY missing")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_auth_client() -> Client:
    """Get a Supabase client for user-facing auth calls (anon key when set)"""
    key = settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY
    if not settings.SUPABASE_URL or not key:
        raise ConfigurationError("SUPABASE_URL or SUPABASE_ANON_KEY missing")
    return create_client(settings.SUPABASE_URL, key)


def get_repository() -> SupabaseRepository:
    try:
        return SupabaseRepository(get_supabase_client())
    except ConfigurationError as e:
        logger.error(f"Repository unavailable: {e}")
        raise HTTPException(status_code=500, detail=str(e))


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer <token>' header value"""
    if not authorization:
        return None
    token = authorization.replace("Bearer ", "", 1).strip()
    return token or None


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    repository: SupabaseRepository = Depends(get_repository)
) -> str:
    """Resolve the caller's user id from the bearer token"""
    try:
        return repository.get_user_id_for_token(parse_bearer(authorization))
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))


def get_optional_user_id(
    authorization: Optional[str] = Header(None),
    repository: SupabaseRepository = Depends(get_repository)
) -> Optional[str]:
    """Like get_current_user_id but returns None instead of failing"""
    token = parse_bearer(authorization)
    if not token:
        return None
    try:
        return repository.get_user_id_for_token(token)
    except AuthenticationError:
        logger.warning("Could not decode the caller's token")
        return None


def get_store_user_id(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """
    User id scoping the habit store

    The local backend is single-user and needs no token.
    """
    if settings.DATA_BACKEND == "local":
        return None
    return get_current_user_id(authorization, get_repository())


def get_habit_store(user_id: Optional[str] = Depends(get_store_user_id)) -> HabitStore:
    try:
        client = None if settings.DATA_BACKEND == "local" else get_supabase_client()
        return build_habit_store(user_id=user_id, client=client)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_auth_gateway() -> AuthGateway:
    try:
        return AuthGateway(get_auth_client())
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_push_sender() -> WebPushSender:
    try:
        return WebPushSender()
    except ConfigurationError:
        raise HTTPException(status_code=500, detail="VAPID keys not configured")


def get_channel_transports() -> ChannelTransports:
    return ChannelTransports()


def get_email_sender() -> EmailSender:
    try:
        return EmailSender()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Reject the call when CRON_SECRET is set and the bearer does not match it"""
    if settings.CRON_SECRET and parse_bearer(authorization) != settings.CRON_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_coach_api_key(
    x_api_key: Optional[str] = Header(None),
    api_key: Optional[str] = Query(None)
) -> None:
    """Check the coach API key from the x-api-key header or the api_key query param"""
    if not settings.COACH_API_KEY:
        raise HTTPException(status_code=500, detail="API key not configured on server")
    provided = x_api_key or api_key
    if not provided or provided != settings.COACH_API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized - Invalid API key")
