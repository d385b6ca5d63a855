"""Configuration of an I/O device instance."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

_INT_FIELDS = {"port_kernel", "port_io"}


@dataclass(frozen=True)
class IoConfig:
    """Settings read from an I/O device's JSON configuration file."""

    ip_kernel: str = ""
    port_kernel: int = 0
    port_io: int = 0
    ip_io: str = ""
    log_level: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IoConfig":
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


def load_config(path: str | Path) -> IoConfig:
    """Read an I/O device configuration file."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"configuration in {path} is not a JSON object")
    return IoConfig.from_dict(data)