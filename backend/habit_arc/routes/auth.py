"""
Auth Routes - Passthrough to the hosted auth provider
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from habit_arc.core.dependencies import get_auth_gateway, parse_bearer
from habit_arc.core.exceptions import AuthenticationError
from habit_arc.models.auth import CredentialsRequest, SessionResponse
from habit_arc.services.habits.remote_store import AuthGateway

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SessionResponse)
async def sign_up(request: CredentialsRequest, gateway: AuthGateway = Depends(get_auth_gateway)):
    """Create an account"""
    try:
        return gateway.sign_up(request.email, request.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/signin", response_model=SessionResponse)
async def sign_in(request: CredentialsRequest, gateway: AuthGateway = Depends(get_auth_gateway)):
    """Sign in with email and password"""
    try:
        return gateway.sign_in(request.email, request.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.post("/signout")
async def sign_out(authorization: Optional[str] = Header(None),
                   gateway: AuthGateway = Depends(get_auth_gateway)):
    """End the caller's session server-side"""
    try:
        gateway.sign_out(parse_bearer(authorization))
        return {"ok": True}
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
