"""
Tests for the in-memory link cache.
"""
from linkly.core.cache import LinkCache, LinkView


def view(code: str, link_id: int = 1, url: str = "https://example.com/") -> LinkView:
    return LinkView(id=link_id, short_code=code, destination_url=url)


def test_get_missing_returns_none():
    cache = LinkCache()
    assert cache.get("nope") is None
    assert "nope" not in cache


def test_put_then_get():
    cache = LinkCache()
    cache.put(view("q3-report", url="https://example.com/report"))

    assert cache.get("q3-report").destination_url == "https://example.com/report"
    assert "q3-report" in cache
    assert len(cache) == 1


def test_put_replaces_existing_entry():
    cache = LinkCache()
    cache.put(view("abc", url="https://old.example/"))
    cache.put(view("abc", url="https://new.example/"))

    assert cache.get("abc").destination_url == "https://new.example/"
    assert len(cache) == 1


def test_remove_returns_evicted_entry():
    cache = LinkCache()
    entry = view("abc")
    cache.put(entry)

    assert cache.remove("abc") == entry
    assert cache.get("abc") is None
    assert cache.remove("abc") is None


def test_warm_replaces_everything():
    cache = LinkCache()
    cache.put(view("stale"))

    loaded = cache.warm([view("one", 1), view("two", 2)])

    assert loaded == 2
    assert cache.get("stale") is None
    assert cache.get("one").id == 1
    assert cache.get("two").id == 2


def test_codes_are_case_sensitive():
    cache = LinkCache()
    cache.put(view("AbC"))
    assert cache.get("abc") is None
