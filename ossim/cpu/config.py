"""Configuration of a CPU instance."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

_INT_FIELDS = {"port_cpu", "port_memory", "port_kernel", "tlb_entries", "cache_entries", "cache_delay"}


@dataclass(frozen=True)
class CpuConfig:
    """Settings read from a CPU's JSON configuration file.

    ``cache_delay`` is expressed in milliseconds.
    """

    port_cpu: int = 0
    ip_cpu: str = ""
    ip_memory: str = ""
    port_memory: int = 0
    ip_kernel: str = ""
    port_kernel: int = 0
    tlb_entries: int = 0
    tlb_replacement: str = ""
    cache_entries: int = 0
    cache_replacement: str = ""
    cache_delay: int = 0
    log_level: str = ""

    @property
    def cache_delay_seconds(self) -> float:
        return self.cache_delay / 1000

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CpuConfig":
        """Build a config from a decoded JSON object; missing keys keep their zero value."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name in _INT_FIELDS:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"invalid value for {f.name}: {value!r}")
            elif not isinstance(value, str):
                raise ValueError(f"invalid value for {f.name}: {value!r}")
            values[f.name] = value
        return cls(**values)


def load_config(path: str | Path) -> CpuConfig:
    """Read a CPU configuration file."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"configuration in {path} is not a JSON object")
    return CpuConfig.from_dict(data)