"""Redirect endpoint for short links."""

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from linkly.core.deps import ResolverDep
from linkly.core.rate_limit import RATE_LIMIT_REDIRECT, client_ip_candidates, limiter
from linkly.services.redirect import NotFound, Visit

logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_to_destination(
    request: Request,
    short_code: str,
    resolver: ResolverDep,
) -> RedirectResponse:
    """Redirect a short code to its destination.

    Served entirely from the in-memory link cache. Unknown and deactivated
    codes get the same 404. The visit is queued for click recording and
    never delays the response.
    """
    result = resolver.resolve(
        short_code,
        Visit(
            ip_candidates=client_ip_candidates(request),
            user_agent=request.headers.get("User-Agent"),
            referrer=request.headers.get("Referer"),
        ),
    )

    if isinstance(result, NotFound):
        logger.info("Redirect failed - link not found", short_code=short_code)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Link not found",
        )

    logger.info("Redirect", short_code=short_code, link_id=result.link_id)
    return RedirectResponse(
        url=result.destination_url,
        status_code=status.HTTP_302_FOUND,
    )
