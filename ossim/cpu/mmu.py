"""Memory management unit: address translation, TLB and page cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ossim.cpu.cache import Cache, CacheEntry
from ossim.cpu.memory_client import MemoryClientError, PageConfig
from ossim.cpu.paging import TLB, page_entries_key, page_number_from_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Location:
    page: int
    offset: int
    key: str


def _overlay(page: str, offset: int, data: str) -> str:
    """Copy ``data`` into ``page`` at ``offset`` without changing the page length."""
    chunk = data[: max(0, len(page) - offset)]
    return page[:offset] + chunk + page[offset + len(chunk):]


class MMU:
    """Translates logical addresses and serves reads and writes through TLB and cache."""

    def __init__(
        self,
        memory,
        tlb_entries: int = 0,
        cache_entries: int = 0,
        tlb_algorithm: str = "FIFO",
        cache_algorithm: str = "CLOCK",
        cache_delay: float = 0.0,
    ):
        self.memory = memory
        try:
            self.page_config: PageConfig = memory.query_page_config()
        except MemoryClientError as exc:
            logger.error("Error querying memory paging information: %s", exc)
            raise
        self.tlb = TLB(tlb_entries, tlb_algorithm)
        self.cache = Cache(cache_entries, cache_algorithm)
        self.cache_delay = cache_delay

    @property
    def page_size(self) -> int:
        return self.page_config.page_size

    def _locate(self, logical_address: str) -> _Location:
        address = int(logical_address)
        page, offset = divmod(address, self.page_size)
        key = page_entries_key(page, self.page_config.entries, self.page_config.number_of_levels)
        return _Location(page=page, offset=offset, key=key)

    def _page_number(self, key: str) -> int:
        try:
            return page_number_from_key(key, self.page_config.entries)
        except ValueError:
            return 0

    def _delay(self) -> None:
        if self.cache_delay > 0:
            time.sleep(self.cache_delay)

    def translate(self, pid: int, logical_address: str) -> str:
        """Return the physical address of ``logical_address`` as a decimal string."""
        loc = self._locate(logical_address)

        if self.tlb.enabled:
            entry = self.tlb.lookup(loc.key)
            if entry is not None:
                logger.info("PID: %d - TLB HIT - Pagina: %d", pid, loc.page)
                logger.info(
                    "PID: %d - OBTENER MARCO - Página: %d - Marco: %d", pid, loc.page, entry.frame
                )
                return str(entry.frame * self.page_size + loc.offset)
            logger.info("PID: %d - TLB MISS - Pagina: %d", pid, loc.page)

        logger.debug("Translating through the page table pid=%d page=%d", pid, loc.page)
        try:
            frame = self.memory.find_frame(pid, loc.key).frame
        except MemoryClientError as exc:
            logger.error("Error looking up frame in page table pid=%d: %s", pid, exc)
            raise
        logger.info("PID: %d - OBTENER MARCO - Página: %d - Marco: %d", pid, loc.page, frame)

        if self.tlb.enabled:
            self.tlb.insert(loc.key, loc.page, frame)

        return str(frame * self.page_size + loc.offset)

    def read(self, pid: int, logical_address: str, size: int) -> str:
        """Read ``size`` bytes at a logical address, through the cache when enabled."""
        self._delay()
        loc = self._locate(logical_address)

        if not self.cache.enabled:
            logger.debug("Cache disabled, reading memory directly pid=%d", pid)
            physical = self.translate(pid, logical_address)
            data = self.memory.read(pid, physical, size, self.page_config)
            logger.info(
                "## PID: %d - Acción: LEER - Dirección Física: %s - Valor: %s", pid, physical, data
            )
            return data

        entry = self.cache.find(pid, loc.key)
        if entry is not None:
            logger.info("PID: %d - Cache Hit - Pagina: %d", pid, loc.page)
            entry.last_access = time.monotonic()
            entry.reference = True
            return entry.data[loc.offset: loc.offset + size]

        logger.info("PID: %d - Cache Miss - Pagina: %d", pid, loc.page)
        physical = self.translate(pid, logical_address)
        page_data = self.memory.read_page(pid, physical, self.page_config)
        self._add_to_cache(pid, loc.key, page_data, modified=False)
        logger.info("PID: %d - Cache Add - Pagina: %d", pid, loc.page)

        data = page_data[loc.offset: loc.offset + size]
        logger.info(
            "## PID: %d - Acción: LEER - Dirección Física: %s - Valor: %s", pid, physical, data
        )
        return data

    def write(self, pid: int, logical_address: str, data: str) -> None:
        """Write ``data`` at a logical address, through the cache when enabled."""
        self._delay()
        loc = self._locate(logical_address)

        if not self.cache.enabled:
            logger.debug("Cache disabled, writing memory directly pid=%d", pid)
            physical = self.translate(pid, logical_address)
            self.memory.write(pid, physical, data, self.page_config)
            logger.info(
                "## PID: %d - Acción: ESCRIBIR - Dirección Física: %s - Valor: %s",
                pid, physical, data,
            )
            return

        entry = self.cache.find(pid, loc.key)
        if entry is not None:
            logger.info("PID: %d - Cache Hit - Pagina: %d", pid, loc.page)
            entry.data = _overlay(entry.data, loc.offset, data)
            entry.last_access = time.monotonic()
            entry.reference = True
            entry.modified = True
            return

        logger.info("PID: %d - Cache Miss - Pagina: %d", pid, loc.page)
        physical = self.translate(pid, logical_address)
        try:
            page_data = self.memory.read_page(pid, physical, self.page_config)
        except MemoryClientError as exc:
            logger.error("Error reading page before write pid=%d: %s", pid, exc)
            page_data = ""

        if page_data:
            data = _overlay(page_data, loc.offset, data)

        logger.info(
            "## PID: %d - Acción: LEER - Dirección Física: %s - Valor: %s", pid, physical, data
        )
        self._add_to_cache(pid, loc.key, data, modified=True)
        logger.info("PID: %d - Cache Add - Pagina: %d", pid, loc.page)

    def flush_process(self, pid: int) -> None:
        """Write back the modified pages of ``pid``, drop its cache entries and clear the TLB."""
        logger.debug("Flushing memory state of pid=%d", pid)
        for entry in self.cache.remove_process(pid):
            if entry.modified:
                self._write_back(entry, use_tlb=True)
        self.tlb.clear()
        logger.debug("Flush completed pid=%d", pid)

    def _add_to_cache(self, pid: int, page_id: str, data: str, modified: bool) -> None:
        if self.cache.is_full():
            victim = self.cache.select_victim()
            if victim is not None and victim.modified:
                self._write_back(victim, use_tlb=False)
        self.cache.add(CacheEntry(pid=pid, page_id=page_id, data=data, modified=modified))

    def _frame_of(self, entry: CacheEntry, page: int, use_tlb: bool) -> int:
        if use_tlb and entry.page_id in self.tlb:
            tlb_entry = self.tlb.lookup(entry.page_id)
            if tlb_entry is not None:
                return tlb_entry.frame
        try:
            frame = self.memory.find_frame(entry.pid, entry.page_id).frame
        except MemoryClientError as exc:
            logger.error("Error looking up frame for write-back pid=%d: %s", entry.pid, exc)
            frame = 0
        logger.info(
            "PID: %d - OBTENER MARCO - Página: %d - Marco: %d", entry.pid, page, frame
        )
        return frame

    def _write_back(self, entry: CacheEntry, use_tlb: bool) -> None:
        page = self._page_number(entry.page_id)
        frame = self._frame_of(entry, page, use_tlb)
        info = {
            "pid": str(entry.pid),
            "data": entry.data,
            "entradas_por_nivel": entry.page_id,
        }
        try:
            self.memory.save_page(info)
        except MemoryClientError as exc:
            logger.error("Error saving page in memory: %s", exc)
        logger.info(
            "PID: %d - Memory Update - Página: %d - Frame: %d", entry.pid, page, frame
        )
        logger.info(
            "## PID: %d - Acción: ESCRIBIR - Dirección Física: %s - Valor: %s",
            entry.pid, frame * self.page_size, entry.data,
        )