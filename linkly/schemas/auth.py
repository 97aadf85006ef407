"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Credential submitted to the login endpoint."""

    password: str


class Token(BaseModel):
    """Token response schema."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AuthStatus(BaseModel):
    authenticated: bool
    expires_at: datetime | None = None
