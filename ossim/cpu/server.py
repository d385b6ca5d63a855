"""HTTP front end of a CPU instance and its command entry point."""

from __future__ import annotations

import json
import logging
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import requests

from ossim.cpu.config import CpuConfig, load_config
from ossim.cpu.executor import Executor, Process
from ossim.cpu.interrupts import Interrupt
from ossim.cpu.kernel_client import KernelClient
from ossim.cpu.memory_client import MemoryClient
from ossim.cpu.mmu import MMU
from ossim.cpu.service import CpuService

logger = logging.getLogger(__name__)

CONFIG_DIR = "./configs/"
HTTP_TIMEOUT = 120.0

_ROUTES = ("/kernel/procesos", "/kernel/interrupciones")


def _configure_logging(level_name: str) -> None:
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    logging.basicConfig(
        level=levels.get(level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def build_executor(config: CpuConfig) -> Executor:
    """Wire memory, kernel, MMU and service together from a configuration."""
    memory = MemoryClient(config.ip_memory, config.port_memory)
    kernel = KernelClient(config.ip_kernel, config.port_kernel)
    mmu = MMU(
        memory,
        config.tlb_entries,
        config.cache_entries,
        config.tlb_replacement,
        config.cache_replacement,
        config.cache_delay_seconds,
    )
    return Executor(CpuService(kernel, mmu), memory)


def send_identification(
    config: CpuConfig, cpu_id: str, session: requests.Session | None = None
) -> requests.Response | None:
    """Announce this CPU to the kernel; returns the response, or None if unreachable."""
    session = session or requests.Session()
    body = {"ip": config.ip_cpu, "puerto": config.port_cpu, "id": cpu_id}
    url = f"http://{config.ip_kernel}:{config.port_kernel}/cpu/conexion-inicial"
    try:
        response = session.post(url, json=body, timeout=HTTP_TIMEOUT)
    except requests.RequestException as exc:
        logger.error(
            "Error sending identification ip=%s port=%d: %s", config.ip_cpu, config.port_cpu, exc
        )
        logger.debug("Server response: nil")
        return None
    logger.debug("Server response status=%s body=%s", response.status_code, body)
    return response


def _parse_process(data: Any) -> Process:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    pid = data.get("pid", 0)
    pc = data.get("pc", 0)
    for name, value in (("pid", pid), ("pc", pc)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"invalid {name} {value!r}")
    return Process(pid=pid, pc=pc)


def create_server(config: CpuConfig, executor: Executor) -> ThreadingHTTPServer:
    """Create (but do not start) the HTTP server that receives processes and interrupts."""

    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("%s - " + format, self.address_string(), *args)

        def _reply(self, status: int, body: bytes, content_type: str = "text/plain; charset=utf-8") -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _body(self) -> Any:
            length = int(self.headers.get("Content-Length") or 0)
            return json.loads(self.rfile.read(length) or b"")

        def _not_allowed(self) -> None:
            if self.path in _ROUTES:
                self._reply(405, b"Method Not Allowed\n")
            else:
                self._reply(404, b"404 page not found\n")

        do_GET = do_PUT = do_DELETE = do_PATCH = _not_allowed

        def do_POST(self) -> None:
            if self.path == "/kernel/procesos":
                self._receive_process()
            elif self.path == "/kernel/interrupciones":
                self._receive_interrupt()
            else:
                self._reply(404, b"404 page not found\n")

        def _receive_process(self) -> None:
            try:
                process = _parse_process(self._body())
            except ValueError as exc:
                logger.error("Error decoding process: %s", exc)
                self._reply(400, b"Error decodificando proceso\n")
                return
            logger.debug("Process received pid=%d pc=%d", process.pid, process.pc)
            reason = executor.run(process)
            answer = {"pid": process.pid, "pc": process.pc, "motivo": reason}
            self._reply(200, (json.dumps(answer) + "\n").encode(), "application/json")

        def _receive_interrupt(self) -> None:
            try:
                interrupt = Interrupt.from_dict(self._body())
            except (ValueError, AttributeError) as exc:
                logger.error("Error decoding interrupt: %s", exc)
                self._reply(500, b"error al decodificar mensaje\n")
                return
            logger.info("## Llega interrupción al puerto Interrupt")
            executor.service.add_interrupt(interrupt)
            self._reply(200, b"ok")

    server = ThreadingHTTPServer((config.ip_cpu, config.port_cpu), Handler)
    server.daemon_threads = True
    return server


def main(argv: list[str] | None = None) -> int:
    """Start a CPU: ``main(["CPU_ID"])`` reads ``./configs/CPU_ID.json``."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Error: Missing required argument 'Identificador'. Usage: cpu {{CPU_ID}}")
        return 1
    cpu_id = args[0]
    config = load_config(f"{CONFIG_DIR}{cpu_id}.json")
    _configure_logging(config.log_level)

    executor = build_executor(config)
    logger.debug("Starting CPU id=%s", cpu_id)
    send_identification(config, cpu_id)

    server = create_server(config, executor)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0