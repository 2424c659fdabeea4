"""
Contract tests for the response shape.

Downstream dashboards parse these keys; if these fail, consumers may break.
"""

import json
import tracemalloc

import pytest

from memstat.collectors.meminfo import MemInfoResult
from memstat.collectors.processes import ProcessResult
from memstat.collectors.runtime import collect_runtime_stats
from memstat.model import (
    MemorySnapshot,
    build_snapshot_from_collectors,
    snapshot_to_json,
    validate_snapshot,
)


def _proc(pid: int) -> ProcessResult:
    return ProcessResult(
        pid=pid,
        user="root",
        vm_rss_kib=2000,
        vm_size_kib=10000,
        name="bash",
        cpu_usage=12.5,
    )


def test_snapshot_keys_exist() -> None:
    snapshot = build_snapshot_from_collectors(
        "1a2b3c4d",
        meminfo=MemInfoResult(total=1000, free=200, available=300),
        runtime=collect_runtime_stats(),
        processes=[_proc(1)],
    )

    payload = snapshot.to_dict()

    assert set(payload.keys()) == {
        "id",
        "total",
        "free",
        "available",
        "runtimeMemoryStats",
        "psEntries",
    }
    assert set(payload["psEntries"][0].keys()) == {
        "pid",
        "user",
        "vmRss",
        "vmSize",
        "name",
        "cpuUsage",
    }
    runtime_keys = set(payload["runtimeMemoryStats"].keys())
    assert {"alloc", "totalAlloc", "sys", "heapAlloc"} <= runtime_keys
    assert {"rss", "vms", "maxRss", "allocatedBlocks", "gcObjects"} <= runtime_keys


def test_sizes_are_integers_in_kib() -> None:
    snapshot = build_snapshot_from_collectors("1a2b3c4d", processes=[_proc(7)])

    entry = json.loads(snapshot_to_json(snapshot))["psEntries"][0]

    assert entry["vmRss"] == 2000
    assert entry["vmSize"] == 10000
    assert isinstance(entry["vmRss"], int)


def test_ps_entries_present_when_no_processes() -> None:
    snapshot = build_snapshot_from_collectors("1a2b3c4d")

    payload = json.loads(snapshot_to_json(snapshot))

    assert payload["psEntries"] == []
    assert payload["total"] == 0


def test_runtime_byte_counters_are_kib() -> None:
    runtime = collect_runtime_stats()

    assert runtime.rss_kib > 0
    assert runtime.vms_kib >= runtime.rss_kib
    assert runtime.threads >= 1


def test_snapshot_json_is_compact_and_sorted() -> None:
    body = snapshot_to_json(build_snapshot_from_collectors("1a2b3c4d"))

    assert " " not in body
    assert body.startswith('{"available":0')


def test_validate_snapshot_rejects_bad_id() -> None:
    with pytest.raises(ValueError, match="8 lower-case hex"):
        validate_snapshot(MemorySnapshot(id="XYZ"))


def test_validate_snapshot_rejects_negative_totals() -> None:
    with pytest.raises(ValueError, match="total"):
        validate_snapshot(MemorySnapshot(id="1a2b3c4d", total=-1))


def test_runtime_go_style_keys_map_to_process_counters() -> None:
    snapshot = build_snapshot_from_collectors("1a2b3c4d", runtime=collect_runtime_stats())

    runtime = snapshot.to_dict()["runtimeMemoryStats"]

    assert runtime["alloc"] == runtime["rss"]
    assert runtime["totalAlloc"] == runtime["maxRss"]
    assert runtime["sys"] == runtime["vms"]
    assert runtime["heapAlloc"] == runtime["data"]
    assert runtime["sys"] > 0


def test_traced_counters_report_when_tracing() -> None:
    tracemalloc.start()
    try:
        held = [bytearray(64 * 1024) for _ in range(4)]
        runtime = collect_runtime_stats()
    finally:
        tracemalloc.stop()

    assert runtime.traced_current_kib >= 256
    assert runtime.traced_peak_kib >= runtime.traced_current_kib
    assert len(held) == 4
