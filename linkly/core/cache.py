"""In-memory short code cache.

Holds every active link so the redirect path never touches the database.
Readers see an immutable snapshot and take no lock; writers build a new
snapshot and swap it in.
"""

import asyncio
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class LinkView:
    """What the redirect path needs to know about an active link."""

    id: int
    short_code: str
    destination_url: str


class LinkCache:
    """Map of short code to active link.

    Invariant: the cache contains exactly the active links in the store.
    Link mutations hold ``mutation_lock`` across both the store write and the
    cache update so that two concurrent edits of one code cannot leave the
    two out of step.
    """

    def __init__(self) -> None:
        self._entries: Mapping[str, LinkView] = MappingProxyType({})
        self._write_lock = threading.Lock()
        self.mutation_lock = asyncio.Lock()

    def get(self, short_code: str) -> LinkView | None:
        """Return the active link for ``short_code``, or None."""
        return self._entries.get(short_code)

    def put(self, link: LinkView) -> None:
        """Insert or replace the entry for ``link.short_code``."""
        with self._write_lock:
            entries = dict(self._entries)
            entries[link.short_code] = link
            self._entries = MappingProxyType(entries)

    def remove(self, short_code: str) -> LinkView | None:
        """Evict ``short_code``. Returns the evicted entry, if any."""
        with self._write_lock:
            if short_code not in self._entries:
                return None
            entries = dict(self._entries)
            removed = entries.pop(short_code)
            self._entries = MappingProxyType(entries)
            return removed

    def warm(self, links: Iterable[LinkView]) -> int:
        """Replace the whole cache with ``links``.

        Returns:
            Number of entries loaded.
        """
        entries = {link.short_code: link for link in links}
        with self._write_lock:
            self._entries = MappingProxyType(entries)
        logger.info("Link cache warmed", entries=len(entries))
        return len(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, short_code: object) -> bool:
        return short_code in self._entries
