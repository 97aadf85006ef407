"""Rate limiting configuration using slowapi, and client address extraction."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from linkly.core.config import get_settings

settings = get_settings()


def client_ip_candidates(request: Request) -> list[str]:
    """Return every address the request claims to come from, best first.

    Order: the ``X-Forwarded-For`` chain (original client first), then
    ``X-Real-IP``, then the socket peer. Values are not validated here.
    """
    candidates: list[str] = []

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        candidates.extend(part.strip() for part in forwarded_for.split(",") if part.strip())

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        candidates.append(real_ip.strip())

    if request.client and request.client.host:
        candidates.append(request.client.host)

    return candidates


def get_real_client_ip(request: Request) -> str:
    """Get the client address used as the rate limit key."""
    candidates = client_ip_candidates(request)
    if candidates:
        return candidates[0]
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

# Redirect is the hot path
RATE_LIMIT_REDIRECT = "1000/minute"

# Login - slows down password guessing on top of the failure delay
RATE_LIMIT_LOGIN = "10/minute"

# Admin API endpoints
RATE_LIMIT_API = "100/minute"
