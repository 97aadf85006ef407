"""
Tests for the click ingestion pipeline, using in-memory stores.
"""
import asyncio
from datetime import datetime, timezone

from linkly.schemas.events import VisitEvent
from linkly.services.click_ingestion import ClickIngestionPipeline, select_client_ip
from linkly.services.geoip import GeoLocation, GeoLookupCache

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class MemoryStore:
    """Collects stored rows; optionally fails or stalls."""

    def __init__(self, fail_times: int = 0, delay: float = 0.0, block: asyncio.Event | None = None):
        self.rows: list[dict] = []
        self.fail_times = fail_times
        self.delay = delay
        self.block = block

    async def __call__(self, click_data: dict) -> None:
        if self.block is not None:
            await self.block.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("database is locked")
        self.rows.append(click_data)


def visit(link_id: int = 1, **kwargs) -> VisitEvent:
    return VisitEvent(link_id=link_id, short_code=f"code{link_id}", **kwargs)


def test_select_client_ip_takes_first_parseable():
    assert select_client_ip(["unknown", " 8.8.8.8 ", "10.0.0.1"]) == "8.8.8.8"
    assert select_client_ip(["::ffff:1.1.1.1"]) == "1.1.1.1"
    assert select_client_ip(["testclient"]) is None
    assert select_client_ip([]) is None


def test_event_is_enriched_and_stored():
    store = MemoryStore()

    async def fetch(ip: str) -> GeoLocation:
        return GeoLocation(country="United States", region="California", city="Mountain View")

    async def run():
        pipeline = ClickIngestionPipeline(geo=GeoLookupCache(fetch), store=store, workers=2)
        await pipeline.start()
        pipeline.ingest(
            visit(
                link_id=7,
                received_at=datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc),
                ip_candidates=["garbage", "8.8.8.8", "10.0.0.2"],
                user_agent=CHROME_WINDOWS,
                referrer="https://news.ycombinator.com/",
            )
        )
        await pipeline.stop()
        return pipeline.stats

    stats = asyncio.run(run())

    assert stats["processed"] == 1
    row = store.rows[0]
    assert row["link_id"] == 7
    assert row["clicked_at"] == datetime(2024, 6, 1, 12, 30)
    assert row["ip_address"] == "8.8.8.8"
    assert row["referrer"] == "https://news.ycombinator.com/"
    assert (row["browser"], row["os"], row["device_type"]) == ("Chrome", "Windows", "Desktop")
    assert (row["country"], row["region"], row["city"]) == ("United States", "California", "Mountain View")


def test_private_ip_is_stored_without_location():
    store = MemoryStore()
    calls = []

    async def fetch(ip: str) -> GeoLocation:
        calls.append(ip)
        return GeoLocation(country="Nowhere")

    async def run():
        pipeline = ClickIngestionPipeline(geo=GeoLookupCache(fetch), store=store)
        await pipeline.start()
        pipeline.ingest(visit(ip_candidates=["192.168.1.10"]))
        await pipeline.stop()

    asyncio.run(run())

    assert calls == []
    assert store.rows[0]["ip_address"] == "192.168.1.10"
    assert store.rows[0]["country"] is None


def test_geo_failure_degrades_to_empty_location():
    store = MemoryStore()

    async def fetch(ip: str) -> GeoLocation:
        raise ConnectionError("geo service down")

    async def run():
        pipeline = ClickIngestionPipeline(geo=GeoLookupCache(fetch), store=store)
        await pipeline.start()
        pipeline.ingest(visit(ip_candidates=["1.1.1.1"]))
        await pipeline.stop()

    asyncio.run(run())

    assert len(store.rows) == 1
    assert store.rows[0]["city"] is None


def test_full_queue_drops_newest_event():
    store = MemoryStore()

    async def run():
        pipeline = ClickIngestionPipeline(store=store, max_queue_size=2)
        accepted = [pipeline.ingest(visit(link_id=n)) for n in (1, 2, 3)]
        await pipeline.start()
        await pipeline.stop()
        return accepted, pipeline.stats

    accepted, stats = asyncio.run(run())

    assert accepted == [True, True, False]
    assert stats["dropped"] == 1
    assert [row["link_id"] for row in store.rows] == [1, 2]


def test_ingest_does_not_wait_for_slow_store():
    store = MemoryStore(delay=0.2)

    async def run():
        pipeline = ClickIngestionPipeline(store=store, workers=1, drain_timeout=0.1)
        await pipeline.start()
        loop = asyncio.get_running_loop()
        start = loop.time()
        for n in range(50):
            pipeline.ingest(visit(link_id=n))
        elapsed = loop.time() - start
        await pipeline.stop()
        return elapsed

    assert asyncio.run(run()) < 0.1


def test_persistence_failure_is_contained():
    store = MemoryStore(fail_times=1)

    async def run():
        pipeline = ClickIngestionPipeline(store=store, workers=1)
        await pipeline.start()
        pipeline.ingest(visit(link_id=1))
        pipeline.ingest(visit(link_id=2))
        await pipeline.stop()
        return pipeline.stats

    stats = asyncio.run(run())

    assert stats["failed"] == 1
    assert stats["processed"] == 1
    assert [row["link_id"] for row in store.rows] == [2]


def test_stop_gives_up_after_drain_timeout():
    async def run():
        store = MemoryStore(block=asyncio.Event())
        pipeline = ClickIngestionPipeline(store=store, workers=1, drain_timeout=0.05)
        await pipeline.start()
        pipeline.ingest(visit())
        await pipeline.stop()
        return pipeline, store

    pipeline, store = asyncio.run(run())

    assert store.rows == []
    assert not pipeline.is_running


def test_missing_user_agent_and_ip():
    store = MemoryStore()

    async def run():
        pipeline = ClickIngestionPipeline(store=store)
        await pipeline.start()
        pipeline.ingest(visit())
        await pipeline.stop()

    asyncio.run(run())

    row = store.rows[0]
    assert row["ip_address"] is None
    assert row["user_agent"] is None
    assert row["browser"] == "Unknown"
