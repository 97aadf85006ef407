"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, Request, status

from linkly.core.cache import LinkCache
from linkly.core.security import Session, SessionAuthenticator
from linkly.services.redirect import RedirectResolver

# Cookie name for the admin session token
AUTH_COOKIE_NAME = "linkly_session"


def get_link_cache(request: Request) -> LinkCache:
    return request.app.state.link_cache


def get_authenticator(request: Request) -> SessionAuthenticator:
    return request.app.state.authenticator


def get_resolver(request: Request) -> RedirectResolver:
    return request.app.state.resolver


async def get_session_token(
    linkly_session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Extract the session token from a Bearer header or the session cookie.

    An explicit header wins, so a stale cookie cannot mask a valid token.
    """
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return linkly_session or None


async def require_session(
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
    token: Annotated[str | None, Depends(get_session_token)],
) -> Session:
    """Get the current admin session.

    Raises HTTPException 401 if the token is missing, unknown or expired.
    Use this for protected routes.
    """
    session = authenticator.validate(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


# Type aliases for dependency injection
CurrentSession = Annotated[Session, Depends(require_session)]
LinkCacheDep = Annotated[LinkCache, Depends(get_link_cache)]
AuthenticatorDep = Annotated[SessionAuthenticator, Depends(get_authenticator)]
ResolverDep = Annotated[RedirectResolver, Depends(get_resolver)]
SessionToken = Annotated[str | None, Depends(get_session_token)]
