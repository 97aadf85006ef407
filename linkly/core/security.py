"""Admin session authentication.

There is a single administrator secret. A successful login issues an opaque
random token that stays valid for a fixed duration. Sessions live in process
memory only, so a restart logs everyone out.
"""

import asyncio
import hashlib
import hmac
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

logger = structlog.get_logger()


class AuthenticationError(Exception):
    """Raised when a login attempt is rejected."""


@dataclass(frozen=True, slots=True)
class Session:
    """An issued admin session."""

    token: str
    created_at: datetime
    expires_at: datetime


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionAuthenticator:
    """Verify the admin secret and track issued sessions.

    Args:
        secret: The admin password.
        session_duration: How long an issued token stays valid.
        failure_delay: Seconds to wait before rejecting a wrong password.
        clock: Returns the current time; replaced in tests.
    """

    def __init__(
        self,
        secret: str,
        session_duration: timedelta,
        failure_delay: float = 0.5,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_digest = _digest(secret)
        self._session_duration = session_duration
        self._failure_delay = failure_delay
        self._clock = clock
        # Keyed by token digest so the raw token is never held as a dict key
        self._sessions: dict[bytes, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    async def login(self, password: str) -> Session:
        """Check ``password`` and issue a new session.

        Every failure takes at least ``failure_delay`` seconds and raises the
        same error, whatever was wrong with the credential.

        Raises:
            AuthenticationError: The password does not match.
        """
        # Comparing fixed-length digests keeps the check constant-time
        # regardless of the submitted length.
        if not hmac.compare_digest(_digest(password), self._secret_digest):
            await asyncio.sleep(self._failure_delay)
            logger.warning("Admin login rejected")
            raise AuthenticationError("Invalid credentials")

        now = self._clock()
        session = Session(
            token=secrets.token_urlsafe(32),
            created_at=now,
            expires_at=now + self._session_duration,
        )
        with self._lock:
            self._prune(now)
            self._sessions[_digest(session.token)] = session

        logger.info("Admin session issued", expires_at=session.expires_at.isoformat())
        return session

    def validate(self, token: str | None) -> Session | None:
        """Return the live session for ``token``, or None.

        A token is rejected from ``expires_at`` onward and removed when seen.
        """
        if not token:
            return None

        key = _digest(token)
        now = self._clock()
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None
            if not hmac.compare_digest(session.token, token):
                return None
            if now >= session.expires_at:
                del self._sessions[key]
                return None
            return session

    def logout(self, token: str | None) -> bool:
        """Revoke ``token``. Returns True if a session was removed."""
        if not token:
            return False
        with self._lock:
            return self._sessions.pop(_digest(token), None) is not None

    def _prune(self, now: datetime) -> None:
        expired = [k for k, s in self._sessions.items() if now >= s.expires_at]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.debug("Expired sessions pruned", count=len(expired))
