"""Multi-level page keys and the translation lookaside buffer."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def page_entries_key(page_number: int, entries_per_table: int, levels: int) -> str:
    """Build the per-level entries key of a page, e.g. ``"1-0-3"``.

    Without multi-level paging (no entries or no levels) the key is the page number itself.
    """
    if entries_per_table > 0 and levels > 0:
        parts = [
            (page_number // entries_per_table ** (levels - level)) % entries_per_table
            for level in range(1, levels + 1)
        ]
        logger.debug(
            "Entries per level page=%d levels=%d entries=%d -> %s",
            page_number, levels, entries_per_table, parts,
        )
        return "-".join(str(part) for part in parts)
    return str(page_number)


def page_number_from_key(key: str, entries_per_table: int) -> int:
    """Recover the page number from a per-level entries key."""
    parts = key.split("-")
    page = 0
    for depth, part in enumerate(reversed(parts)):
        try:
            number = int(part)
        except ValueError as exc:
            raise ValueError(f"error converting entry {part!r} to a number") from exc
        page += number * entries_per_table ** depth
    return page


@dataclass
class TLBEntry:
    """A cached page-to-frame translation."""

    page: int
    frame: int
    created: int
    last_used: int
    access_count: int = 1


class TLB:
    """Translation lookaside buffer with FIFO or LRU replacement.

    With any other algorithm name nothing is ever evicted.
    """

    def __init__(self, max_entries: int, algorithm: str):
        self.max_entries = max_entries
        self.algorithm = algorithm
        self._entries: dict[str, TLBEntry] = {}
        self._ticks = itertools.count()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0

    def lookup(self, key: str) -> TLBEntry | None:
        """Return the entry for ``key`` and record the access, or None on a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                entry.last_used = next(self._ticks)
                entry.access_count += 1
            return entry

    def insert(self, key: str, page: int, frame: int) -> str | None:
        """Add a translation, evicting first when full; returns the evicted key if any."""
        with self._lock:
            evicted = None
            if len(self._entries) >= self.max_entries:
                evicted = self._evict()
            tick = next(self._ticks)
            self._entries[key] = TLBEntry(page=page, frame=frame, created=tick, last_used=tick)
        logger.debug("TLB entry added page=%d frame=%d", page, frame)
        return evicted

    def _evict(self) -> str | None:
        if not self._entries:
            return None
        if self.algorithm == "FIFO":
            victim = min(self._entries, key=lambda k: self._entries[k].created)
        elif self.algorithm == "LRU":
            victim = min(self._entries, key=lambda k: self._entries[k].last_used)
        else:
            return None
        del self._entries[victim]
        logger.debug("TLB entry evicted (%s) key=%s", self.algorithm, victim)
        return victim

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("TLB cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries