"""
Pydantic models for the auth passthrough endpoints
"""
from typing import Optional

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Email/password pair forwarded to the hosted auth provider"""
    email: str = Field(..., min_length=3, description="Account email")
    password: str = Field(..., min_length=6, description="Account password")


class SessionResponse(BaseModel):
    """Session returned after sign up or sign in"""
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
