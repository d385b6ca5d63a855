"""Interrupts delivered to the CPU and the queue that holds them."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)


class InterruptType(str, enum.Enum):
    EXCEPTION = "Excepcion"
    EXTERNAL = "Externa"
    EVICTION = "Desalojo"
    IO_FINISHED = "FinIO"


def _coerce_kind(value: str) -> Union[InterruptType, str]:
    try:
        return InterruptType(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Interrupt:
    """An interrupt aimed at a process; unknown kinds are kept as plain strings."""

    pid: int
    kind: Union[InterruptType, str]
    maskable: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Interrupt":
        pid = data.get("pid", 0)
        kind = data.get("tipo", "")
        maskable = data.get("es_enmascarable", False)
        if isinstance(pid, bool) or not isinstance(pid, int):
            raise ValueError(f"invalid pid {pid!r}")
        if not isinstance(kind, str):
            raise ValueError(f"invalid interrupt type {kind!r}")
        if not isinstance(maskable, bool):
            raise ValueError(f"invalid es_enmascarable {maskable!r}")
        return cls(pid=pid, kind=_coerce_kind(kind), maskable=maskable)

    def to_dict(self) -> dict[str, Any]:
        kind = self.kind.value if isinstance(self.kind, InterruptType) else self.kind
        return {"pid": self.pid, "tipo": kind, "es_enmascarable": self.maskable}


class InterruptQueue:
    """Thread-safe FIFO of pending interrupts."""

    def __init__(self) -> None:
        self._items: list[Interrupt] = []
        self._lock = threading.Lock()

    def add(self, interrupt: Interrupt) -> None:
        with self._lock:
            self._items.append(interrupt)
        logger.debug("Interrupt added type=%s pid=%d", interrupt.kind, interrupt.pid)

    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._items)

    def take(self, pid: int) -> Interrupt | None:
        """Remove and return the oldest interrupt for ``pid``.

        If none matches, the oldest pending interrupt is discarded and None is returned.
        """
        with self._lock:
            if not self._items:
                return None
            index = next((i for i, item in enumerate(self._items) if item.pid == pid), None)
            if index is None:
                dropped = self._items.pop(0)
                logger.debug("No interrupt for pid=%d; dropped type=%s", pid, dropped.kind)
                return None
            found = self._items.pop(index)
        logger.debug("Interrupt processed type=%s pid=%d", found.kind, found.pid)
        return found

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
        logger.debug("Interrupts cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)