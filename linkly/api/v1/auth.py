"""Authentication endpoints for the admin session."""

import structlog
from fastapi import APIRouter, HTTPException, Request, Response, status

from linkly.core.config import get_settings
from linkly.core.deps import AUTH_COOKIE_NAME, AuthenticatorDep, SessionToken
from linkly.core.observability import record_login_attempt
from linkly.core.rate_limit import RATE_LIMIT_LOGIN, limiter
from linkly.core.security import AuthenticationError
from linkly.schemas.auth import AuthStatus, LoginRequest, Token

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
@limiter.limit(RATE_LIMIT_LOGIN)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    authenticator: AuthenticatorDep,
) -> Token:
    """Exchange the admin password for a session token.

    The token is returned in the body for API clients and also set as an
    httpOnly cookie for browsers.
    """
    try:
        session = await authenticator.login(credentials.password)
    except AuthenticationError:
        record_login_attempt(success=False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    record_login_attempt(success=True)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=session.token,
        max_age=int((session.expires_at - session.created_at).total_seconds()),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )
    return Token(access_token=session.token, expires_at=session.expires_at)


@router.post("/logout")
async def logout(
    response: Response,
    token: SessionToken,
    authenticator: AuthenticatorDep,
) -> dict[str, str]:
    """Revoke the caller's session, if any, and clear the cookie."""
    if authenticator.logout(token):
        logger.info("Admin session revoked")
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return {"message": "Logged out successfully"}


@router.get("/status", response_model=AuthStatus)
async def auth_status(token: SessionToken, authenticator: AuthenticatorDep) -> AuthStatus:
    """Check authentication status without raising 401."""
    session = authenticator.validate(token)
    if session is None:
        return AuthStatus(authenticated=False)
    return AuthStatus(authenticated=True, expires_at=session.expires_at)
