"""Pydantic schemas."""

from linkly.schemas.analytics import (
    BreakdownItem,
    ClickResponse,
    DailyClicks,
    LinkAnalytics,
)
from linkly.schemas.auth import AuthStatus, LoginRequest, Token
from linkly.schemas.events import VisitEvent
from linkly.schemas.link import (
    LinkBase,
    LinkCreate,
    LinkListResponse,
    LinkResponse,
    LinkUpdate,
    LinkWithStatsResponse,
)

__all__ = [
    "AuthStatus",
    "BreakdownItem",
    "ClickResponse",
    "DailyClicks",
    "LinkAnalytics",
    "LinkBase",
    "LinkCreate",
    "LinkListResponse",
    "LinkResponse",
    "LinkUpdate",
    "LinkWithStatsResponse",
    "LoginRequest",
    "Token",
    "VisitEvent",
]
