"""Link management endpoints. All require an admin session."""

import math
from typing import Annotated

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from linkly.core.database import AsyncSessionDep
from linkly.core.deps import CurrentSession, LinkCacheDep
from linkly.core.rate_limit import RATE_LIMIT_API, limiter
from linkly.models.link import Link
from linkly.schemas.analytics import LinkAnalytics
from linkly.schemas.link import (
    LinkCreate,
    LinkListResponse,
    LinkResponse,
    LinkUpdate,
    LinkWithStatsResponse,
)
from linkly.services import analytics_service, link_service

logger = structlog.get_logger()

router = APIRouter(prefix="/links", tags=["links"])


async def _get_link_or_404(session: AsyncSession, link_id: int) -> Link:
    link = await link_service.get_link_by_id(session, link_id)
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Link not found",
        )
    return link


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_API)
async def create_link(
    request: Request,
    link_data: LinkCreate,
    _: CurrentSession,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> LinkResponse:
    """Create a new short link.

    If `custom_code` is provided, it will be used as the short code.
    Otherwise, a random 7-character code is generated.
    """
    try:
        link = await link_service.create_link(session, cache, link_data)
    except link_service.ShortCodeTakenError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    return LinkResponse.model_validate(link)


@router.get("", response_model=LinkListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    _: CurrentSession,
    session: AsyncSessionDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    include_inactive: bool = True,
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> LinkListResponse:
    """List links, newest first, with their click counts."""
    rows, total = await link_service.list_links_with_stats(
        session,
        page=page,
        page_size=page_size,
        include_inactive=include_inactive,
        search=q,
    )

    items = []
    for link, click_count in rows:
        item = LinkWithStatsResponse.model_validate(link)
        item.click_count = click_count
        items.append(item)

    return LinkListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.get("/{link_id}", response_model=LinkWithStatsResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link(
    request: Request,
    link_id: int,
    _: CurrentSession,
    session: AsyncSessionDep,
) -> LinkWithStatsResponse:
    """Get a specific link by ID."""
    link = await _get_link_or_404(session, link_id)
    item = LinkWithStatsResponse.model_validate(link)
    item.click_count = await link_service.get_click_count(session, link.id)
    return item


@router.patch("/{link_id}", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def update_link(
    request: Request,
    link_id: int,
    link_data: LinkUpdate,
    _: CurrentSession,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> LinkResponse:
    """Edit a link's destination, title, description or active flag."""
    link = await _get_link_or_404(session, link_id)
    updated = await link_service.update_link(session, cache, link, link_data)
    return LinkResponse.model_validate(updated)


@router.post("/{link_id}/deactivate", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def deactivate_link(
    request: Request,
    link_id: int,
    _: CurrentSession,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> LinkResponse:
    """Stop a link from redirecting. Its click history is kept."""
    link = await _get_link_or_404(session, link_id)
    link = await link_service.deactivate_link(session, cache, link)
    return LinkResponse.model_validate(link)


@router.post("/{link_id}/reactivate", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def reactivate_link(
    request: Request,
    link_id: int,
    _: CurrentSession,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> LinkResponse:
    """Make a deactivated link redirect again."""
    link = await _get_link_or_404(session, link_id)
    link = await link_service.reactivate_link(session, cache, link)
    return LinkResponse.model_validate(link)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    link_id: int,
    _: CurrentSession,
    session: AsyncSessionDep,
    cache: LinkCacheDep,
) -> None:
    """Permanently delete a link and all of its clicks."""
    link = await _get_link_or_404(session, link_id)
    await link_service.delete_link(session, cache, link)


@router.get("/{link_id}/analytics", response_model=LinkAnalytics)
@limiter.limit(RATE_LIMIT_API)
async def get_link_analytics(
    request: Request,
    link_id: int,
    _: CurrentSession,
    session: AsyncSessionDep,
) -> LinkAnalytics:
    """Get click analytics for a link, active or not."""
    link = await _get_link_or_404(session, link_id)
    return await analytics_service.get_link_analytics(session, link)
