"""Page cache with CLOCK and CLOCK-M replacement."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached page of a process."""

    pid: int
    page_id: str
    data: str
    reference: bool = True
    modified: bool = False
    last_access: float = field(default_factory=time.monotonic)


class Cache:
    """Page cache; ``select_victim`` removes and returns the entry to replace."""

    def __init__(self, max_entries: int, algorithm: str):
        self.max_entries = max_entries
        self.algorithm = algorithm
        self.clock = 0
        self._entries: list[CacheEntry] = []
        self._lock = threading.RLock()

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0

    def find(self, pid: int, page_id: str) -> CacheEntry | None:
        with self._lock:
            return next(
                (e for e in self._entries if e.page_id == page_id and e.pid == pid), None
            )

    def is_full(self) -> bool:
        with self._lock:
            return len(self._entries) >= self.max_entries

    def add(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries.append(entry)
        logger.debug("Cache entry added pid=%d page_id=%s", entry.pid, entry.page_id)

    def _rotated(self) -> list[CacheEntry]:
        if 0 <= self.clock < len(self._entries):
            return self._entries[self.clock:] + self._entries[: self.clock]
        return list(self._entries)

    def _clock_pick(self, ring: list[CacheEntry]) -> int | None:
        for i, entry in enumerate(ring):
            if not entry.reference:
                return i
            entry.reference = False
        return next((i for i, e in enumerate(ring) if not e.reference), None)

    def _clock_m_pick(self, ring: list[CacheEntry]) -> int | None:
        def clean(e: CacheEntry) -> bool:
            return not e.reference and not e.modified

        def dirty(e: CacheEntry) -> bool:
            return not e.reference and e.modified

        found = next((i for i, e in enumerate(ring) if clean(e)), None)
        if found is not None:
            return found
        for i, entry in enumerate(ring):
            if dirty(entry):
                return i
            entry.reference = False
        found = next((i for i, e in enumerate(ring) if clean(e)), None)
        if found is not None:
            return found
        return next((i for i, e in enumerate(ring) if dirty(e)), None)

    def select_victim(self) -> CacheEntry | None:
        """Remove the entry chosen by the replacement algorithm and return it.

        The remaining entries keep the order of the clock sweep; returns None when
        nothing can be evicted or the algorithm is unknown.
        """
        with self._lock:
            if self.algorithm == "CLOCK":
                pick = self._clock_pick
            elif self.algorithm == "CLOCK-M":
                pick = self._clock_m_pick
            else:
                return None
            ring = self._rotated()
            index = pick(ring)
            if index is None:
                return None
            victim = ring.pop(index)
            self._entries = ring
            self.clock = index
        logger.debug("Cache entry evicted (%s) page_id=%s", self.algorithm, victim.page_id)
        return victim

    def remove_process(self, pid: int) -> list[CacheEntry]:
        """Remove every entry of ``pid``; returns them from last to first position."""
        with self._lock:
            removed = [e for e in reversed(self._entries) if e.pid == pid]
            self._entries = [e for e in self._entries if e.pid != pid]
        for entry in removed:
            logger.debug("Cache entry removed page_id=%s", entry.page_id)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        with self._lock:
            return iter(list(self._entries))