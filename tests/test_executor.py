import json

import pytest

from ossim.cpu.executor import Executor, Process
from ossim.cpu.interrupts import Interrupt, InterruptType
from ossim.cpu.kernel_client import KernelClientError
from ossim.cpu.memory_client import Instruction, MemoryClientError
from ossim.cpu.service import CpuService


class FakeKernel:
    def __init__(self, fail=False):
        self.fail = fail
        self.bodies = []

    def send_syscall(self, body):
        if self.fail:
            raise KernelClientError("down")
        self.bodies.append(json.loads(body))


class FakeMMU:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def write(self, pid, address, data):
        if self.fail:
            raise MemoryClientError("boom")
        self.calls.append(("write", pid, address, data))

    def read(self, pid, address, size):
        if self.fail:
            raise MemoryClientError("boom")
        self.calls.append(("read", pid, address, size))
        return ""

    def flush_process(self, pid):
        self.calls.append(("flush", pid))


class FakeMemory:
    def __init__(self, program):
        self.program = program

    def fetch_instruction(self, pid, pc):
        if pc >= len(self.program):
            raise MemoryClientError("no instruction")
        return self.program[pc]


def make(program=(), kernel_fail=False, mmu_fail=False):
    kernel = FakeKernel(kernel_fail)
    mmu = FakeMMU(mmu_fail)
    service = CpuService(kernel, mmu)
    return Executor(service, FakeMemory(list(program))), kernel, mmu


def test_decode_uppercases_opcode():
    executor, _, _ = make()
    assert executor.decode(Instruction("noop", ["a"])) == ("NOOP", ["a"])


def test_fetch_returns_instruction():
    program = [Instruction("NOOP")]
    executor, _, _ = make(program)
    assert executor.fetch(1, 0) == program[0]


def test_noop_advances():
    executor, _, _ = make()
    pc = 4
    assert executor.execute("NOOP", [], 1, pc) == (True, pc + 1)


def test_write_goes_through_mmu():
    executor, _, mmu = make()
    pc = 2
    assert executor.execute("WRITE", ["16", "hola"], 3, pc) == (True, pc + 1)
    assert mmu.calls == [("write", 3, "16", "hola")]


@pytest.mark.parametrize("kind", ["WRITE", "READ"])
def test_memory_ops_need_two_args(kind):
    executor, _, mmu = make()
    assert executor.execute(kind, ["16"], 1, 3) == (False, 3)
    assert mmu.calls == []


def test_write_error_keeps_pc():
    executor, _, _ = make(mmu_fail=True)
    assert executor.execute("WRITE", ["0", "x"], 1, 6) == (False, 6)


def test_read_invalid_size():
    executor, _, mmu = make()
    assert executor.execute("READ", ["0", "abc"], 1, 2) == (False, 2)
    assert mmu.calls == []


def test_read_calls_mmu_with_int_size():
    executor, _, mmu = make()
    pc = 0
    assert executor.execute("READ", ["8", "4"], 2, pc) == (True, pc + 1)
    assert mmu.calls == [("read", 2, "8", 4)]


def test_goto_jumps():
    executor, _, _ = make()
    assert executor.execute("GOTO", ["7"], 1, 0) == (True, 7)


@pytest.mark.parametrize("args", [["x"], ["1", "2"], []])
def test_goto_invalid(args):
    executor, _, _ = make()
    assert executor.execute("GOTO", args, 1, 5) == (False, 5)


def test_init_proc_continues_and_notifies_kernel():
    executor, kernel, _ = make()
    pc = 3
    assert executor.execute("INIT_PROC", ["prog", "64"], 9, pc) == (True, pc + 1)
    assert kernel.bodies == [
        {"pid": 9, "pc": pc + 1, "instruccion": "INIT_PROC", "args": ["prog", "64"]}
    ]


@pytest.mark.parametrize("kind", ["IO", "DUMP_MEMORY"])
def test_blocking_syscalls_return_control(kind):
    executor, kernel, _ = make()
    pc = 1
    assert executor.execute(kind, [], 2, pc) == (False, pc + 1)
    assert kernel.bodies[0]["instruccion"] == kind


def test_syscall_error_keeps_pc():
    executor, _, _ = make(kernel_fail=True)
    assert executor.execute("IO", ["DISCO", "10"], 2, 4) == (False, 4)


def test_exit_flushes_before_syscall():
    executor, kernel, mmu = make()
    pc = 5
    assert executor.execute("EXIT", [], 3, pc) == (False, pc + 1)
    assert mmu.calls == [("flush", 3)]
    assert kernel.bodies[0]["instruccion"] == "EXIT"


def test_unknown_instruction():
    executor, _, _ = make()
    assert executor.execute("FOO", [], 1, 3) == (False, 3)


def test_run_until_exit():
    program = [Instruction("NOOP"), Instruction("noop"), Instruction("EXIT")]
    executor, kernel, _ = make(program)
    process = Process(pid=1, pc=0)
    assert executor.run(process) == "Proceso ejecutado exitosamente"
    assert process.pc == len(program)
    assert [b["instruccion"] for b in kernel.bodies] == ["EXIT"]


def test_run_fetch_error():
    executor, _, _ = make([])
    message = executor.run(Process(pid=1, pc=0))
    assert message.startswith("Error en fetch:")


def test_run_stops_on_eviction():
    program = [Instruction("NOOP"), Instruction("EXIT")]
    executor, kernel, mmu = make(program)
    executor.service.add_interrupt(Interrupt(pid=1, kind=InterruptType.EVICTION))
    process = Process(pid=1, pc=0)
    assert executor.run(process) == "Interrupción detectada, proceso pausado"
    assert process.pc == 1
    assert mmu.calls == [("flush", 1)]
    assert kernel.bodies == []


def test_run_ignores_interrupt_of_other_process():
    program = [Instruction("NOOP"), Instruction("EXIT")]
    executor, kernel, _ = make(program)
    executor.service.add_interrupt(Interrupt(pid=2, kind=InterruptType.EVICTION))
    assert executor.run(Process(pid=1)) == "Proceso ejecutado exitosamente"
    assert not executor.service.has_interrupts()
    assert len(kernel.bodies) == 1