"""CPU service: interrupt queue, syscall forwarding and memory flushing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ossim.cpu.interrupts import Interrupt, InterruptQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyscallRequest:
    """A syscall raised by a process, handed to the kernel."""

    pid: int
    pc: int
    instruction: str
    args: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"pid": self.pid, "pc": self.pc, "instruccion": self.instruction}
        if self.args:
            body["args"] = list(self.args)
        return body


class CpuService:
    """Shared state of a CPU: pending interrupts, the kernel link and the MMU."""

    def __init__(self, kernel, mmu):
        self.kernel = kernel
        self.mmu = mmu
        self.interrupts = InterruptQueue()

    def add_interrupt(self, interrupt: Interrupt) -> None:
        self.interrupts.add(interrupt)

    def has_interrupts(self) -> bool:
        return self.interrupts.has_pending()

    def take_interrupt(self, pid: int) -> Interrupt | None:
        return self.interrupts.take(pid)

    def clear_interrupts(self) -> None:
        self.interrupts.clear()

    def send_syscall(self, syscall: SyscallRequest) -> None:
        """Encode the syscall as JSON and send it to the kernel."""
        body = json.dumps(syscall.to_dict(), separators=(",", ":")).encode()
        self.kernel.send_syscall(body)

    def flush_process(self, pid: int) -> None:
        logger.debug("Requesting memory flush for evicted process pid=%d", pid)
        self.mmu.flush_process(pid)