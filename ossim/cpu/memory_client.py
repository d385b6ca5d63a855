"""HTTP client for the memory module used by the CPU."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

logger = logging.getLogger(__name__)


class MemoryClientError(Exception):
    """Raised when the memory module cannot be reached or answers with an error."""


@dataclass(frozen=True)
class PageConfig:
    """Paging parameters announced by the memory module."""

    page_size: int
    entries: int = 0
    number_of_levels: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PageConfig":
        return cls(
            page_size=int(data.get("page_size", 0)),
            entries=int(data.get("entries_per_page", 0)),
            number_of_levels=int(data.get("number_of_levels", 0)),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "page_size": self.page_size,
            "entries_per_page": self.entries,
            "number_of_levels": self.number_of_levels,
        }


@dataclass(frozen=True)
class FrameInfo:
    """Result of a page-table lookup."""

    page: int = 0
    frame: int = 0
    offset: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FrameInfo":
        return cls(
            page=int(data.get("pagina", 0)),
            frame=int(data.get("frame", 0)),
            offset=int(data.get("offset", 0)),
        )


@dataclass(frozen=True)
class Instruction:
    """An instruction as returned by the memory module."""

    instruction: str
    parameters: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Instruction":
        return cls(
            instruction=str(data.get("instruccion", "")),
            parameters=[str(p) for p in data.get("parametros") or []],
        )


class MemoryClient:
    """Talks to the memory module over its HTTP interface."""

    def __init__(self, ip: str, port: int, session: requests.Session | None = None):
        self.ip = ip
        self.port = port
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return f"http://{self.ip}:{self.port}"

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.error("Error contacting memory at %s:%d (%s): %s", self.ip, self.port, path, exc)
            raise MemoryClientError(f"error sending request to {path}: {exc}") from exc
        if response.status_code != 200:
            status = f"{response.status_code} {response.reason or ''}".strip()
            logger.error("Memory answered %s on %s", status, path)
            raise MemoryClientError(f"memory answered with error: {status}")
        return response

    @staticmethod
    def _decode(response: requests.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise MemoryClientError(f"error decoding response: {exc}") from exc
        if not isinstance(payload, dict):
            raise MemoryClientError("error decoding response: expected a JSON object")
        return payload

    @staticmethod
    def _access_body(
        pid: int, address: str, page_config: PageConfig, size: int = 0, data: str = ""
    ) -> dict[str, Any]:
        try:
            physical = int(address)
        except (TypeError, ValueError) as exc:
            raise MemoryClientError(f"invalid physical address {address!r}") from exc
        frame, offset = divmod(physical, page_config.page_size)
        body: dict[str, Any] = {
            "pid": str(pid),
            "frame": frame,
            "offset": offset,
            "tamanio": size,
        }
        if data:
            body["valor_a_escribir"] = data
        return body

    def write(self, pid: int, address: str, data: str, page_config: PageConfig) -> None:
        """Write ``data`` at a physical address."""
        body = self._access_body(pid, address, page_config, data=data)
        response = self._request("POST", "/cpu/escritura", json=body)
        if response.text != "OK":
            logger.error("WRITE failed in memory: %s", response.text)
            raise MemoryClientError(f"WRITE failed: {response.text}")
        logger.debug("WRITE ok pid=%d address=%s data=%s", pid, address, data)

    def read(self, pid: int, address: str, size: int, page_config: PageConfig) -> str:
        """Read ``size`` bytes from a physical address."""
        body = self._access_body(pid, address, page_config, size=size)
        payload = self._decode(self._request("POST", "/cpu/lectura", json=body))
        content = str(payload.get("contenido", ""))
        logger.debug("READ ok pid=%d address=%s size=%d data=%s", pid, address, size, content)
        return content

    def read_page(self, pid: int, address: str, page_config: PageConfig) -> str:
        """Read the whole page that holds a physical address."""
        body = self._access_body(pid, address, page_config)
        payload = self._decode(self._request("POST", "/cpu/lectura-completa", json=body))
        content = str(payload.get("contenido", ""))
        logger.debug("READ page ok pid=%d address=%s data=%s", pid, address, content)
        return content

    def fetch_instruction(self, pid: int, pc: int) -> Instruction:
        """Fetch the instruction at ``pc`` of process ``pid``."""
        response = self._request("POST", "/cpu/instruccion", json={"pid": pid, "pc": pc})
        instruction = Instruction.from_dict(self._decode(response))
        logger.debug(
            "FETCH ok pid=%d pc=%d instruction=%s params=%s",
            pid, pc, instruction.instruction, instruction.parameters,
        )
        return instruction

    def find_frame(self, pid: int, entries_key: str) -> FrameInfo:
        """Look up the frame of a page given its per-level entries key."""
        response = self._request(
            "GET", "/cpu/pagina-a-frame", params={"pid": pid, "entradas-nivel": entries_key}
        )
        return FrameInfo.from_dict(self._decode(response))

    def query_page_config(self) -> PageConfig:
        """Ask memory for page size, entries per table and number of levels."""
        response = self._request("GET", "/cpu/page-size-y-entries")
        return PageConfig.from_dict(self._decode(response))

    def save_page(self, info: Mapping[str, Any]) -> None:
        """Write a whole page back to memory."""
        try:
            payload = json.dumps(dict(info))
        except (TypeError, ValueError) as exc:
            raise MemoryClientError(f"error serialising page data: {exc}") from exc
        self._request(
            "POST",
            "/cpu/actualizar-pag-completa",
            data=payload + "\n",
            headers={"Content-Type": "application/json"},
        )