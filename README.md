# ossim

Two modules of a distributed operating-system simulator: a **CPU** and an
**I/O device**. Each runs as a small HTTP server. The CPU talks to a kernel
module and a memory module; the I/O device talks to the kernel module.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## The CPU

```
ossim-cpu CPU1
```

The argument is the CPU identifier. The configuration is read from
`./configs/<identifier>.json`, for example:

```json
{
  "ip_cpu": "127.0.0.1",
  "port_cpu": 8004,
  "ip_memory": "127.0.0.1",
  "port_memory": 8002,
  "ip_kernel": "127.0.0.1",
  "port_kernel": 8001,
  "tlb_entries": 4,
  "tlb_replacement": "LRU",
  "cache_entries": 2,
  "cache_replacement": "CLOCK",
  "cache_delay": 50,
  "log_level": "DEBUG"
}
```

- `tlb_replacement` is `FIFO` or `LRU`; `tlb_entries: 0` disables the TLB.
- `cache_replacement` is `CLOCK` or `CLOCK-M`; `cache_entries: 0` disables the
  page cache, and reads and writes then go straight to memory.
- `cache_delay` is in milliseconds and is waited before every cached read or
  write.
- `log_level` is one of `DEBUG`, `INFO`, `WARN`/`WARNING`, `ERROR`.

On start-up the CPU asks memory for its page size, entries per table and
number of paging levels, announces itself to the kernel
(`POST /cpu/conexion-inicial`), and then serves on `ip_cpu:port_cpu`:

- `POST /kernel/procesos` with `{"pid": ..., "pc": ...}`: runs the
  fetch–decode–execute cycle for that process and answers with
  `{"pid", "pc", "motivo"}`.
- `POST /kernel/interrupciones` with `{"pid", "tipo", "es_enmascarable"}`:
  queues an interrupt. Pending interrupts are checked after every
  instruction; an interrupt of type `Desalojo` for the running process
  writes its modified cached pages back to memory, clears the TLB and pauses
  the process.

Supported instructions: `NOOP`, `WRITE <address> <data>`,
`READ <address> <size>`, `GOTO <pc>`, and the syscalls `INIT_PROC`, `IO`,
`DUMP_MEMORY` and `EXIT`, which are forwarded to the kernel
(`POST /cpu/proceso`). `INIT_PROC` lets the process keep running; `IO`,
`DUMP_MEMORY` and `EXIT` hand control back. An unknown instruction stops the
cycle without advancing the program counter.

The building blocks can also be used directly from Python:
`ossim.cpu.memory_client.MemoryClient`, `ossim.cpu.kernel_client.KernelClient`,
`ossim.cpu.interrupts.InterruptQueue`, `ossim.cpu.paging.TLB` (with
`page_entries_key` and `page_number_from_key`), `ossim.cpu.cache.Cache`,
`ossim.cpu.mmu.MMU`, `ossim.cpu.service.CpuService` and
`ossim.cpu.executor.Executor`. `ossim.cpu.server.build_executor` wires them
together from a `ossim.cpu.config.CpuConfig`, and
`ossim.cpu.server.create_server` returns an unstarted HTTP server.

## The I/O device

```
ossim-io DISK 8005
```

The first argument is the device name, the second selects the configuration
file `./configs/<second argument>.json`:

```json
{
  "ip_io": "127.0.0.1",
  "port_io": 8005,
  "ip_kernel": "127.0.0.1",
  "port_kernel": 8001,
  "log_level": "INFO"
}
```

The device registers with the kernel (`POST /io/conexion-inicial`) and
serves `/kernel/usleep` on `port_io`, which takes
`{"pid": ..., "tiempo_sleep": <milliseconds>}`, waits that long and then
tells the kernel the operation has finished (`POST /io/peticion-finalizada`).
On SIGINT or SIGTERM it notifies the kernel that it is disconnecting
(`POST /io/desconexion`) and exits.

From Python, `ossim.iodevice.server.IoDevice` performs these calls and
`ossim.iodevice.server.create_server` returns an unstarted HTTP server.

## What this package does not include

The kernel (scheduling, process creation, I/O queues) and the memory module
(page tables, frames, instruction storage) are not part of this package. The
CPU and the I/O device only work against separately running services that
answer the HTTP endpoints named above.