"""Instruction cycle of the CPU: fetch, decode, execute and interrupt checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ossim.cpu.interrupts import InterruptType
from ossim.cpu.kernel_client import KernelClientError
from ossim.cpu.memory_client import Instruction, MemoryClientError
from ossim.cpu.service import SyscallRequest

logger = logging.getLogger(__name__)

FINISHED = "Proceso ejecutado exitosamente"
PAUSED = "Interrupción detectada, proceso pausado"


@dataclass
class Process:
    """A process handed to the CPU by the kernel."""

    pid: int
    pc: int = 0


class Executor:
    """Runs processes instruction by instruction."""

    def __init__(self, service, memory):
        self.service = service
        self.memory = memory

    def fetch(self, pid: int, pc: int) -> Instruction:
        """Fetch the instruction at ``pc`` from memory."""
        instruction = self.memory.fetch_instruction(pid, pc)
        logger.info("## PID: %d - FETCH - Program Counter: %d", pid, pc)
        return instruction

    def decode(self, instruction: Instruction) -> tuple[str, list[str]]:
        """Return the upper-cased opcode and its arguments."""
        return instruction.instruction.upper(), list(instruction.parameters)

    def _syscall(self, kind: str, args: list[str], pid: int, pc: int) -> bool:
        syscall = SyscallRequest(pid=pid, pc=pc + 1, instruction=kind, args=list(args))
        try:
            self.service.send_syscall(syscall)
        except KernelClientError as exc:
            logger.error("Error sending syscall: %s", exc)
            return False
        logger.debug("Syscall sent to kernel pid=%d instruction=%s new_pc=%d", pid, kind, pc + 1)
        return True

    def execute(self, kind: str, args: list[str], pid: int, pc: int) -> tuple[bool, int]:
        """Execute one instruction; returns whether to keep running and the new PC."""
        logger.info("## PID: %d - Ejecutando: %s - %s", pid, kind, " ".join(args))

        if kind == "NOOP":
            return True, pc + 1

        if kind == "WRITE":
            if len(args) < 2:
                logger.error("WRITE needs an address and data pid=%d pc=%d", pid, pc)
                return False, pc
            address, data = args[0], args[1]
            try:
                self.service.mmu.write(pid, address, data)
            except (MemoryClientError, ValueError) as exc:
                logger.error("Error writing memory pid=%d address=%s: %s", pid, address, exc)
                return False, pc
            return True, pc + 1

        if kind == "READ":
            if len(args) < 2:
                logger.error("READ needs an address and a size pid=%d pc=%d", pid, pc)
                return False, pc
            address = args[0]
            try:
                size = int(args[1])
            except ValueError:
                logger.error("Invalid READ size pid=%d size=%s", pid, args[1])
                return False, pc
            try:
                self.service.mmu.read(pid, address, size)
            except (MemoryClientError, ValueError) as exc:
                logger.error("Error reading memory pid=%d address=%s: %s", pid, address, exc)
                return False, pc
            return True, pc + 1

        if kind == "GOTO":
            if len(args) != 1:
                logger.error("GOTO needs a single numeric argument pid=%d args=%s", pid, args)
                return False, pc
            try:
                target = int(args[0])
            except ValueError:
                logger.error("GOTO needs a valid number pid=%d argument=%s", pid, args[0])
                return False, pc
            return True, target

        if kind == "INIT_PROC":
            if not self._syscall(kind, args, pid, pc):
                return False, pc
            return True, pc + 1

        if kind in ("IO", "DUMP_MEMORY"):
            if not self._syscall(kind, args, pid, pc):
                return False, pc
            return False, pc + 1

        if kind == "EXIT":
            self.service.flush_process(pid)
            if not self._syscall(kind, args, pid, pc):
                return False, pc
            return False, pc + 1

        logger.debug("Unknown instruction %s", kind)
        return False, pc

    def run(self, process: Process) -> str:
        """Run ``process`` until it exits, blocks or is evicted; returns the reason."""
        while True:
            logger.debug("Starting instruction cycle pid=%d pc=%d", process.pid, process.pc)
            try:
                instruction = self.fetch(process.pid, process.pc)
            except MemoryClientError as exc:
                logger.error("Fetch error: %s", exc)
                return f"Error en fetch: {exc}"

            kind, args = self.decode(instruction)
            logger.debug("Decoded instruction %s %s", kind, args)

            keep_running, process.pc = self.execute(kind, args, process.pid, process.pc)

            if kind == "EXIT":
                logger.debug("Process finished pid=%d", process.pid)
                break
            if not keep_running:
                logger.debug("Process paused by syscall pid=%d", process.pid)
                break

            if self.service.has_interrupts():
                logger.debug("Interrupt pending pid=%d pc=%d", process.pid, process.pc)
                interrupt = self.service.take_interrupt(process.pid)
                if (
                    interrupt is not None
                    and interrupt.kind == InterruptType.EVICTION
                    and interrupt.pid == process.pid
                ):
                    logger.debug("Eviction interrupt, flushing memory pid=%d", process.pid)
                    self.service.flush_process(process.pid)
                    return PAUSED

        logger.debug("Instruction cycle completed pid=%d pc=%d", process.pid, process.pc)
        return FINISHED