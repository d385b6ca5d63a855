"""I/O device: kernel handshake, simulated waits and its HTTP front end."""

from __future__ import annotations

import json
import logging
import signal
import sys
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import requests

from ossim.iodevice.config import IoConfig, load_config

logger = logging.getLogger(__name__)

CONFIG_DIR = "./configs/"
HTTP_TIMEOUT = 120.0
USLEEP_PATH = "/kernel/usleep"
COMPLETED = b"IO operation completed successfully"


class IoDeviceError(Exception):
    """Raised when the kernel cannot be notified."""


class _Shutdown(Exception):
    pass


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


class IoDevice:
    """A named I/O device that reports to the kernel."""

    def __init__(self, name: str, config: IoConfig, session: requests.Session | None = None):
        self.name = name
        self.config = config
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"http://{self.config.ip_kernel}:{self.config.port_kernel}{path}"

    def _identification(self, pid: int = 0, queue: str = "") -> dict[str, Any]:
        return {
            "nombre": self.name,
            "ip": self.config.ip_io,
            "puerto": self.config.port_io,
            "pid": pid,
            "cola": queue,
        }

    def connect(self) -> requests.Response | None:
        """Announce this device to the kernel; returns the response, or None if unreachable."""
        body = self._identification()
        try:
            response = self._session.post(
                self._url("/io/conexion-inicial"), json=body, timeout=HTTP_TIMEOUT
            )
        except requests.RequestException as exc:
            logger.error(
                "Error sending identification ip=%s port=%d: %s",
                self.config.ip_kernel, self.config.port_kernel, exc,
            )
            logger.debug("Server response: nil")
            return None
        logger.debug("Server response status=%s body=%s", response.status_code, body)
        return response

    def notify_disconnect(self) -> None:
        """Tell the kernel this device is going away."""
        try:
            response = self._session.post(
                self._url("/io/desconexion"), json=self._identification(), timeout=HTTP_TIMEOUT
            )
        except requests.RequestException as exc:
            raise IoDeviceError(f"error sending disconnect notification: {exc}") from exc
        if response.status_code != 200:
            raise IoDeviceError(f"kernel answered with status: {response.status_code}")
        logger.debug(
            "Disconnect notification sent status=%s name=%s", response.status_code, self.name
        )

    def notify_io_finished(self, pid: int) -> None:
        """Tell the kernel that process ``pid`` has finished its I/O."""
        body = self._identification(pid=pid, queue="blocked")
        try:
            response = self._session.post(
                self._url("/io/peticion-finalizada"), json=body, timeout=HTTP_TIMEOUT
            )
        except requests.RequestException as exc:
            raise IoDeviceError(f"error sending POST to kernel: {exc}") from exc
        if response.status_code != 200:
            raise IoDeviceError(f"kernel returned non-OK status: {response.status_code}")
        logger.debug(
            "Kernel notified of IO end pid=%d device=%s status=%s",
            pid, self.name, response.status_code,
        )

    def perform(self, pid: int, duration_ms: int) -> None:
        """Wait ``duration_ms`` milliseconds on behalf of ``pid``, then notify the kernel."""
        logger.info("## PID: %d - Inicio de IO - Tiempo: %d", pid, duration_ms)
        if duration_ms > 0:
            time.sleep(duration_ms / 1000)
        logger.info("## PID: %d - Fin de IO", pid)
        self.notify_io_finished(pid)


def _parse_usleep(raw: bytes) -> tuple[int, int]:
    data = json.loads(raw or b"")
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    pid = data.get("pid", 0)
    duration = data.get("tiempo_sleep", 0)
    for name, value in (("pid", pid), ("tiempo_sleep", duration)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"invalid {name} {value!r}")
    return pid, duration


def create_server(device: IoDevice) -> ThreadingHTTPServer:
    """Create (but do not start) the HTTP server that receives I/O requests."""

    class Handler(BaseHTTPRequestHandler):
        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("%s - " + format, self.address_string(), *args)

        def _reply(self, status: int, body: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _handle(self) -> None:
            if self.path != USLEEP_PATH:
                self._reply(404, b"404 page not found\n")
                return
            length = int(self.headers.get("Content-Length") or 0)
            try:
                pid, duration = _parse_usleep(self.rfile.read(length))
            except ValueError as exc:
                logger.error("Error decoding IO request: %s", exc)
                self._reply(400, b"Error al decodificar ioIdentificacion")
                return
            try:
                device.perform(pid, duration)
            except IoDeviceError as exc:
                logger.error("Error notifying kernel of IO end pid=%d: %s", pid, exc)
                self._reply(500, b"Error al notificar kernel")
                return
            self._reply(200, COMPLETED)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _handle

    server = ThreadingHTTPServer(("", device.config.port_io), Handler)
    server.daemon_threads = True
    return server


def main(argv: list[str] | None = None) -> int:
    """Start a device: ``main(["NAME", "PORT"])`` reads ``./configs/PORT.json``."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print(
            "Error: Missing required arguments 'NOMBRE' and 'PORT'. "
            "Usage: io {{NOMBRE}} {{PORT}}"
        )
        return 1
    name, port = args[0], args[1]
    if not name:
        logger.error("The IO name cannot be empty")
        return 1

    config = load_config(f"{CONFIG_DIR}{port}.json")
    _configure_logging(config.log_level)
    device = IoDevice(name, config)
    logger.debug("Starting IO device name=%s", name)

    def _on_signal(signum: int, _frame: Any) -> None:
        logger.debug("Signal %s received, shutting down IO device name=%s", signum, name)
        try:
            device.notify_disconnect()
        except IoDeviceError as exc:
            logger.error("Error notifying kernel of disconnect: %s", exc)
        else:
            logger.debug("Kernel notified of disconnect")
        raise _Shutdown

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    device.connect()
    server = create_server(device)
    try:
        server.serve_forever()
    except _Shutdown:
        pass
    finally:
        server.server_close()
    return 0