import json

import pytest

from ossim.cpu.config import CpuConfig, load_config

FULL = {
    "port_cpu": 8004,
    "ip_cpu": "127.0.0.1",
    "ip_memory": "127.0.0.1",
    "port_memory": 8002,
    "ip_kernel": "127.0.0.1",
    "port_kernel": 8001,
    "tlb_entries": 4,
    "tlb_replacement": "LRU",
    "cache_entries": 2,
    "cache_replacement": "CLOCK-M",
    "cache_delay": 1000,
    "log_level": "DEBUG",
}


def test_from_dict_reads_every_field():
    config = CpuConfig.from_dict(FULL)
    assert config.port_cpu == FULL["port_cpu"]
    assert config.ip_kernel == FULL["ip_kernel"]
    assert config.tlb_replacement == FULL["tlb_replacement"]
    assert config.cache_replacement == FULL["cache_replacement"]
    assert config.log_level == FULL["log_level"]


def test_missing_keys_keep_zero_values():
    config = CpuConfig.from_dict({"ip_cpu": "localhost"})
    assert config == CpuConfig(ip_cpu="localhost")
    assert config.tlb_entries == 0
    assert config.cache_replacement == ""


def test_cache_delay_in_seconds():
    assert CpuConfig(cache_delay=1000).cache_delay_seconds == 1.0


@pytest.mark.parametrize("key,value", [("port_cpu", "8004"), ("tlb_entries", True), ("ip_cpu", 5)])
def test_wrong_types_are_rejected(key, value):
    with pytest.raises(ValueError):
        CpuConfig.from_dict({key: value})


def test_load_config_round_trip(tmp_path):
    path = tmp_path / "cpu1.json"
    path.write_text(json.dumps(FULL), encoding="utf-8")
    assert load_config(path) == CpuConfig.from_dict(FULL)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_load_config_rejects_non_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_load_config_rejects_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)