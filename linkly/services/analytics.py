"""Per-link click analytics computed from raw click rows."""

from datetime import date, datetime, timedelta, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from linkly.models.click import Click
from linkly.models.link import Link
from linkly.schemas.analytics import (
    BreakdownItem,
    ClickResponse,
    DailyClicks,
    LinkAnalytics,
)
from linkly.schemas.link import LinkResponse
from linkly.services.user_agent import UNKNOWN

logger = structlog.get_logger()

TOP_N = 10
RECENT_CLICKS_LIMIT = 500
DAILY_WINDOW_DAYS = 30


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part * 100 / total, 1)


async def _breakdown(
    session: AsyncSession,
    link_id: int,
    column: InstrumentedAttribute,
    total: int,
    empty_label: str = UNKNOWN,
) -> list[BreakdownItem]:
    """Top values of ``column`` for one link, most clicked first."""
    label = func.coalesce(column, empty_label).label("label")
    clicks = func.count().label("clicks")
    result = await session.execute(
        select(label, clicks)
        .where(Click.link_id == link_id)
        .group_by(label)
        .order_by(clicks.desc(), label)
        .limit(TOP_N)
    )
    return [
        BreakdownItem(label=row.label, clicks=row.clicks, percentage=_percentage(row.clicks, total))
        for row in result.all()
    ]


async def _daily_series(
    session: AsyncSession,
    link_id: int,
    days: int = DAILY_WINDOW_DAYS,
) -> list[DailyClicks]:
    """Clicks per UTC day for the last ``days`` days, zero-filled."""
    today = datetime.now(timezone.utc).date()
    start = today - timedelta(days=days - 1)
    day = func.date(Click.clicked_at).label("day")

    result = await session.execute(
        select(day, func.count().label("clicks"))
        .where(
            Click.link_id == link_id,
            Click.clicked_at >= datetime.combine(start, datetime.min.time()),
        )
        .group_by(day)
    )
    counts: dict[date, int] = {}
    for row in result.all():
        # SQLite's date() returns text
        key = date.fromisoformat(row.day) if isinstance(row.day, str) else row.day
        counts[key] = row.clicks

    series = []
    for offset in range(days):
        current = start + timedelta(days=offset)
        series.append(DailyClicks(date=current, clicks=counts.get(current, 0)))
    return series


async def get_link_analytics(session: AsyncSession, link: Link) -> LinkAnalytics:
    """Aggregate every click recorded for ``link``.

    Args:
        session: Database session.
        link: The link to report on; may be inactive.

    Returns:
        Totals, top-10 breakdowns by browser, OS, device, referrer and
        country, a 30-day daily series, and the most recent clicks.
    """
    totals = await session.execute(
        select(
            func.count().label("total_clicks"),
            func.count(func.distinct(Click.ip_address)).label("unique_visitors"),
        ).where(Click.link_id == link.id)
    )
    total_row = totals.one()
    total = total_row.total_clicks

    recent = await session.execute(
        select(Click)
        .where(Click.link_id == link.id)
        .order_by(Click.clicked_at.desc(), Click.id.desc())
        .limit(RECENT_CLICKS_LIMIT)
    )

    analytics = LinkAnalytics(
        link=LinkResponse.model_validate(link),
        total_clicks=total,
        unique_visitors=total_row.unique_visitors,
        browsers=await _breakdown(session, link.id, Click.browser, total),
        operating_systems=await _breakdown(session, link.id, Click.os, total),
        devices=await _breakdown(session, link.id, Click.device_type, total),
        referrers=await _breakdown(session, link.id, Click.referrer, total, empty_label="Direct"),
        countries=await _breakdown(session, link.id, Click.country, total),
        daily=await _daily_series(session, link.id),
        recent_clicks=[ClickResponse.model_validate(c) for c in recent.scalars()],
    )

    logger.debug("Analytics fetched", link_id=link.id, total_clicks=total)
    return analytics
