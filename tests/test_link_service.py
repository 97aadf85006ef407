"""
Tests for cache ordering around link mutations, using a stand-in session
that records what the cache held at commit time.
"""
import asyncio

import pytest

from linkly.core.cache import LinkCache, LinkView
from linkly.models.link import Link
from linkly.schemas.link import LinkCreate, LinkUpdate
from linkly.services import link_service


class _EmptyResult:
    def scalar_one_or_none(self):
        return None


class RecordingSession:
    """Just enough of AsyncSession for the mutation paths."""

    def __init__(self, cache: LinkCache, code: str, fail_commit: bool = False):
        self.cache = cache
        self.code = code
        self.fail_commit = fail_commit
        self.seen_at_commit = "unset"
        self.added = []
        self.rolled_back = False

    def add(self, obj):
        self.added.append(obj)

    async def execute(self, statement):
        return _EmptyResult()

    async def commit(self):
        self.seen_at_commit = self.cache.get(self.code)
        if self.fail_commit:
            raise RuntimeError("disk I/O error")
        for n, obj in enumerate(self.added, start=1):
            obj.id = n

    async def rollback(self):
        self.rolled_back = True

    async def refresh(self, obj):
        return None


def active_link(code: str = "q3-report") -> Link:
    return Link(id=1, short_code=code, destination_url="https://example.com/report", is_active=True)


def warmed_cache(link: Link) -> LinkCache:
    cache = LinkCache()
    cache.put(LinkView(id=link.id, short_code=link.short_code, destination_url=link.destination_url))
    return cache


def test_deactivate_evicts_before_commit():
    link = active_link()
    cache = warmed_cache(link)
    session = RecordingSession(cache, link.short_code)

    asyncio.run(link_service.deactivate_link(session, cache, link))

    assert session.seen_at_commit is None
    assert cache.get(link.short_code) is None
    assert link.is_active is False


def test_delete_evicts_before_commit():
    link = active_link()
    cache = warmed_cache(link)
    session = RecordingSession(cache, link.short_code)

    asyncio.run(link_service.delete_link(session, cache, link))

    assert session.seen_at_commit is None
    assert cache.get(link.short_code) is None


def test_failed_delete_restores_cache_entry():
    link = active_link()
    cache = warmed_cache(link)
    session = RecordingSession(cache, link.short_code, fail_commit=True)

    with pytest.raises(RuntimeError):
        asyncio.run(link_service.delete_link(session, cache, link))

    assert session.rolled_back
    assert cache.get(link.short_code).destination_url == "https://example.com/report"


def test_create_publishes_after_commit():
    cache = LinkCache()
    session = RecordingSession(cache, "fresh")

    link = asyncio.run(
        link_service.create_link(
            session,
            cache,
            LinkCreate(destination_url="https://example.com/fresh", custom_code="fresh"),
        )
    )

    assert session.seen_at_commit is None
    assert cache.get("fresh") == LinkView(id=link.id, short_code="fresh", destination_url="https://example.com/fresh")


def test_failed_create_leaves_cache_untouched():
    cache = LinkCache()
    session = RecordingSession(cache, "fresh", fail_commit=True)

    with pytest.raises(RuntimeError):
        asyncio.run(
            link_service.create_link(
                session,
                cache,
                LinkCreate(destination_url="https://example.com/fresh", custom_code="fresh"),
            )
        )

    assert "fresh" not in cache


def test_reactivate_publishes_after_commit():
    link = active_link()
    link.is_active = False
    cache = LinkCache()
    session = RecordingSession(cache, link.short_code)

    asyncio.run(link_service.reactivate_link(session, cache, link))

    assert session.seen_at_commit is None
    assert cache.get(link.short_code) is not None


def test_generated_codes_are_base62():
    code = link_service.generate_short_code()
    assert len(code) == 7
    assert all(c in link_service.SHORT_CODE_CHARS for c in code)
    assert len(link_service.generate_short_code(9)) == 9


class RefreshFailingSession(RecordingSession):
    """Commits succeed, then reloading the row fails."""

    async def refresh(self, obj):
        raise RuntimeError("database is locked")


def test_failed_refresh_after_create_still_publishes():
    cache = LinkCache()
    session = RefreshFailingSession(cache, "fresh")

    with pytest.raises(RuntimeError):
        asyncio.run(
            link_service.create_link(
                session,
                cache,
                LinkCreate(destination_url="https://example.com/fresh", custom_code="fresh"),
            )
        )

    assert cache.get("fresh").destination_url == "https://example.com/fresh"


def test_failed_refresh_after_edit_serves_new_destination():
    link = active_link()
    cache = warmed_cache(link)
    session = RefreshFailingSession(cache, link.short_code)

    with pytest.raises(RuntimeError):
        asyncio.run(
            link_service.update_link(
                session,
                cache,
                link,
                LinkUpdate(destination_url="https://example.com/moved"),
            )
        )

    assert cache.get(link.short_code).destination_url == "https://example.com/moved"


def test_failed_refresh_after_reactivate_still_publishes():
    link = active_link()
    link.is_active = False
    cache = LinkCache()
    session = RefreshFailingSession(cache, link.short_code)

    with pytest.raises(RuntimeError):
        asyncio.run(link_service.reactivate_link(session, cache, link))

    assert link.short_code in cache
