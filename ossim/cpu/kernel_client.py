"""HTTP client the CPU uses to hand syscalls to the kernel."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

import requests

logger = logging.getLogger(__name__)


class KernelClientError(Exception):
    """Raised when the kernel cannot be reached."""


class KernelClient:
    """Sends process syscalls to the kernel."""

    def __init__(self, ip: str, port: int, session: requests.Session | None = None):
        self.ip = ip
        self.port = port
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"http://{self.ip}:{self.port}/cpu/proceso"

    def send_syscall(self, body: Mapping[str, Any] | bytes | str) -> None:
        """Post a syscall; ``body`` is a mapping or already encoded JSON."""
        payload = body if isinstance(body, (bytes, str)) else json.dumps(dict(body))
        try:
            response = self._session.post(
                self.url, data=payload, headers={"Content-Type": "application/json"}
            )
        except requests.RequestException as exc:
            logger.error("Error sending process to kernel at %s:%d: %s", self.ip, self.port, exc)
            raise KernelClientError(f"error sending syscall to kernel: {exc}") from exc
        logger.debug("Kernel answered %s for body %s", response.status_code, payload)