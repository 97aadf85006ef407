"""Link Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, computed_field, field_validator

from linkly.core.config import get_settings

settings = get_settings()

SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,32}$")

# Paths served by the application itself; a link with one of these codes
# would never be reachable.
RESERVED_CODES = frozenset(
    {"api", "health", "metrics", "docs", "redoc", "openapi.json", "favicon.ico"}
)


def validate_short_code(code: str) -> str:
    """Validate a user-supplied short code and return it unchanged."""
    if not SHORT_CODE_PATTERN.match(code):
        raise ValueError(
            "Short code must be 3-32 characters of letters, numbers, '-' or '_'"
        )
    if code.lower() in RESERVED_CODES:
        raise ValueError(f"Short code '{code}' is reserved")
    return code


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class LinkBase(BaseModel):
    """Base schema for link data."""

    destination_url: HttpUrl = Field(description="The URL visitors are sent to")
    title: str | None = Field(default=None, max_length=255, description="Optional title")
    description: str | None = Field(default=None, description="Optional description")

    @field_validator("title", "description")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class LinkCreate(LinkBase):
    """Schema for creating a new link."""

    custom_code: str | None = Field(
        default=None,
        description="Optional custom short code; generated when omitted",
    )

    @field_validator("custom_code")
    @classmethod
    def validate_custom_code(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_short_code(v.strip())


class LinkUpdate(BaseModel):
    """Schema for editing a link. Only fields that are set are applied."""

    destination_url: HttpUrl | None = None
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    is_active: bool | None = None

    @field_validator("title", "description")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class LinkResponse(BaseModel):
    """Schema for link response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    short_code: str
    destination_url: str
    title: str | None
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def short_url(self) -> str:
        """Public URL of the short link."""
        return f"{settings.base_url}/{self.short_code}"


class LinkWithStatsResponse(LinkResponse):
    """Link plus its total click count, as listed on the dashboard."""

    click_count: int = 0


class LinkListResponse(BaseModel):
    """Schema for paginated link list response."""

    items: list[LinkWithStatsResponse]
    total: int
    page: int
    page_size: int
    pages: int
