"""Pydantic schemas for analytics responses."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from linkly.schemas.link import LinkResponse


class BreakdownItem(BaseModel):
    """Clicks for one value of a dimension (browser, country, ...)."""

    label: str
    clicks: int
    percentage: float = Field(description="Percentage of total clicks")


class DailyClicks(BaseModel):
    """Click count for a single day."""

    date: date
    clicks: int


class ClickResponse(BaseModel):
    """A single recorded click."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    clicked_at: datetime
    ip_address: str | None
    user_agent: str | None
    referrer: str | None
    browser: str | None
    os: str | None
    device_type: str | None
    country: str | None
    region: str | None
    city: str | None


class LinkAnalytics(BaseModel):
    """Aggregated analytics for one link."""

    link: LinkResponse
    total_clicks: int
    unique_visitors: int = Field(description="Distinct client IPs")
    browsers: list[BreakdownItem]
    operating_systems: list[BreakdownItem]
    devices: list[BreakdownItem]
    referrers: list[BreakdownItem]
    countries: list[BreakdownItem]
    daily: list[DailyClicks]
    recent_clicks: list[ClickResponse]
