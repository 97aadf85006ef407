"""Short code resolution for the public redirect path."""

from dataclasses import dataclass

import structlog

from linkly.core.cache import LinkCache
from linkly.core.observability import record_redirect
from linkly.schemas.events import VisitEvent
from linkly.services.click_ingestion import ClickIngestionPipeline

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class Found:
    destination_url: str
    link_id: int


@dataclass(frozen=True, slots=True)
class NotFound:
    pass


NOT_FOUND = NotFound()


@dataclass(frozen=True, slots=True)
class Visit:
    """Request details captured for the click record."""

    ip_candidates: list[str]
    user_agent: str | None = None
    referrer: str | None = None


class RedirectResolver:
    """Resolve short codes from the in-memory cache and record visits.

    Resolution never waits on the database or the click pipeline: an unknown
    or inactive code is simply absent from the cache, and recording the
    visit is a non-blocking handoff.
    """

    def __init__(self, cache: LinkCache, pipeline: ClickIngestionPipeline) -> None:
        self._cache = cache
        self._pipeline = pipeline

    def resolve(self, short_code: str, visit: Visit) -> Found | NotFound:
        """Look up ``short_code`` and, when found, queue a visit event."""
        link = self._cache.get(short_code)
        if link is None:
            record_redirect("not_found")
            return NOT_FOUND

        record_redirect("found")
        try:
            self._pipeline.ingest(
                VisitEvent(
                    link_id=link.id,
                    short_code=link.short_code,
                    ip_candidates=visit.ip_candidates,
                    user_agent=visit.user_agent,
                    referrer=visit.referrer,
                )
            )
        except Exception as e:
            # The visitor still gets redirected; only the click is lost
            logger.error("Failed to queue visit", short_code=short_code, error=str(e))

        return Found(destination_url=link.destination_url, link_id=link.id)
