"""Background ingestion of visit events into click records."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import timezone
from typing import Any

import structlog

from linkly.core.database import async_session_factory
from linkly.core.observability import (
    record_click_dropped,
    record_click_failed,
    record_click_processed,
    record_click_received,
    set_pending_clicks,
)
from linkly.models.click import Click
from linkly.schemas.events import VisitEvent
from linkly.services.geoip import GeoLookupCache, normalize_ip
from linkly.services.user_agent import classify_user_agent

logger = structlog.get_logger()

ClickStore = Callable[[dict[str, Any]], Awaitable[None]]


async def store_click(click_data: dict[str, Any]) -> None:
    """Insert a single click row."""
    async with async_session_factory() as session:
        try:
            session.add(Click(**click_data))
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def select_client_ip(candidates: list[str]) -> str | None:
    """Return the first candidate that parses as an IP address."""
    for candidate in candidates:
        ip = normalize_ip(candidate)
        if ip is not None:
            return ip
    return None


class ClickIngestionPipeline:
    """Bounded queue of visit events drained by a pool of worker tasks.

    The redirect path only ever calls :meth:`ingest`, which never waits. The
    workers enrich each event (client IP, user agent, location) and store it
    as one click row. When the queue is full the incoming event is dropped.

    Usage:
        pipeline = ClickIngestionPipeline(geo=geo_cache)
        await pipeline.start()
        pipeline.ingest(event)
        # ... later ...
        await pipeline.stop()
    """

    def __init__(
        self,
        geo: GeoLookupCache | None = None,
        store: ClickStore = store_click,
        max_queue_size: int = 1000,
        workers: int = 4,
        drain_timeout: float = 5.0,
    ) -> None:
        """Initialize the pipeline.

        Args:
            geo: Geolocation cache. When None, location fields stay empty.
            store: Coroutine function persisting one click's column values.
            max_queue_size: Events held before new ones are dropped.
            workers: Number of concurrent worker tasks.
            drain_timeout: Seconds :meth:`stop` waits for the queue to empty.
        """
        self._geo = geo
        self._store = store
        self._queue: asyncio.Queue[VisitEvent] = asyncio.Queue(maxsize=max_queue_size)
        self._worker_count = workers
        self._drain_timeout = drain_timeout
        self._workers: list[asyncio.Task] = []
        self._running = False
        self._events_received = 0
        self._events_processed = 0
        self._events_failed = 0
        self._events_dropped = 0

    def ingest(self, event: VisitEvent) -> bool:
        """Queue ``event`` for processing without waiting.

        Returns:
            True if the event was queued, False if it was dropped.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._events_dropped += 1
            record_click_dropped()
            logger.warning(
                "Click queue full, dropping event",
                link_id=event.link_id,
                queue_size=self._queue.maxsize,
            )
            return False

        self._events_received += 1
        record_click_received()
        set_pending_clicks(self._queue.qsize())
        return True

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._running:
            logger.warning("Click pipeline already running")
            return

        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(), name=f"click-worker-{n}")
            for n in range(self._worker_count)
        ]
        logger.info(
            "Click pipeline started",
            workers=self._worker_count,
            queue_size=self._queue.maxsize,
        )

    async def stop(self) -> None:
        """Drain pending events for up to ``drain_timeout``, then stop workers."""
        if not self._running:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Click pipeline drain timed out, abandoning events",
                pending=self._queue.qsize(),
            )

        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        logger.info("Click pipeline stopped", **self.stats)

    async def _worker(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._process(event)
            finally:
                self._queue.task_done()
                set_pending_clicks(self._queue.qsize())

    async def _process(self, event: VisitEvent) -> None:
        start_time = time.perf_counter()
        try:
            click_data = await self._enrich(event)
        except Exception as e:
            self._events_failed += 1
            record_click_failed("enrichment")
            logger.error("Click enrichment failed", link_id=event.link_id, error=str(e))
            return

        try:
            await self._store(click_data)
        except Exception as e:
            self._events_failed += 1
            record_click_failed("persistence")
            logger.error(
                "Failed to store click",
                link_id=event.link_id,
                short_code=event.short_code,
                error=str(e),
            )
            return

        duration = time.perf_counter() - start_time
        self._events_processed += 1
        record_click_processed(duration)
        logger.debug(
            "Click stored",
            link_id=event.link_id,
            short_code=event.short_code,
            duration_ms=round(duration * 1000, 2),
        )

    async def _enrich(self, event: VisitEvent) -> dict[str, Any]:
        ip_address = select_client_ip(event.ip_candidates)
        ua = classify_user_agent(event.user_agent)

        location = None
        if self._geo is not None and ip_address is not None:
            location = await self._geo.lookup(ip_address)

        # Stored as naive UTC, matching the database's CURRENT_TIMESTAMP
        clicked_at = event.received_at
        if clicked_at.tzinfo is not None:
            clicked_at = clicked_at.astimezone(timezone.utc).replace(tzinfo=None)

        return {
            "link_id": event.link_id,
            "clicked_at": clicked_at,
            "ip_address": ip_address,
            "user_agent": event.user_agent,
            "referrer": event.referrer,
            "browser": ua.browser,
            "os": ua.os,
            "device_type": ua.device_type,
            "country": location.country if location else None,
            "region": location.region if location else None,
            "city": location.city if location else None,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Get pipeline counters."""
        return {
            "queued": self._queue.qsize(),
            "received": self._events_received,
            "processed": self._events_processed,
            "failed": self._events_failed,
            "dropped": self._events_dropped,
        }
