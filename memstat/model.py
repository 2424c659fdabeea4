"""
memstat.model
AUTHOR: carter-vin

Response schema + deterministic serialization primitives.

Design goals:
- One frozen response shape: sizes are integers in KiB, psEntries always present
- Explicit structure (no accidental serialization via __dict__)
- Deterministic key ordering in the JSON body
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from memstat.collectors.meminfo import MemInfoResult
from memstat.collectors.processes import ProcessResult
from memstat.collectors.runtime import RuntimeResult
from memstat.identity import is_valid_instance_id


@dataclass(frozen=True)
class ProcessSample:
    """
    One process, sampled once per request
    - vm_rss / vm_size: KiB
    - cpu_usage: percent of one CPU over the sampling window
    """

    pid: int
    user: str
    vm_rss: int
    vm_size: int
    name: str
    cpu_usage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "user": self.user,
            "vmRss": self.vm_rss,
            "vmSize": self.vm_size,
            "name": self.name,
            "cpuUsage": self.cpu_usage,
        }


@dataclass(frozen=True)
class RuntimeMemoryStats:
    """
    Memory counters of the serving interpreter (KiB unless noted)

    The alloc / totalAlloc / sys / heapAlloc keys map onto process counters:
    - alloc: resident set size
    - totalAlloc: peak resident set size
    - sys: virtual size reserved from the OS
    - heapAlloc: heap + data segment
    tracedCurrent / tracedPeak stay 0 unless tracemalloc is tracing.
    """

    rss: float = 0.0
    vms: float = 0.0
    shared: float = 0.0
    data: float = 0.0
    max_rss: float = 0.0
    traced_current: float = 0.0
    traced_peak: float = 0.0
    # counts
    allocated_blocks: int = 0
    gc_objects: int = 0
    gc_collections: int = 0
    threads: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "alloc": self.rss,
            "totalAlloc": self.max_rss,
            "sys": self.vms,
            "heapAlloc": self.data,
            "rss": self.rss,
            "vms": self.vms,
            "shared": self.shared,
            "data": self.data,
            "maxRss": self.max_rss,
            "tracedCurrent": self.traced_current,
            "tracedPeak": self.traced_peak,
            "allocatedBlocks": self.allocated_blocks,
            "gcObjects": self.gc_objects,
            "gcCollections": self.gc_collections,
            "threads": self.threads,
        }


@dataclass(frozen=True)
class MemorySnapshot:
    """
    Top-level response; built fresh per request, never mutated
    """

    id: str
    total: int = 0
    free: int = 0
    available: int = 0
    runtime: RuntimeMemoryStats = field(default_factory=RuntimeMemoryStats)
    ps_entries: tuple[ProcessSample, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "total": self.total,
            "free": self.free,
            "available": self.available,
            "runtimeMemoryStats": self.runtime.to_dict(),
            "psEntries": [entry.to_dict() for entry in self.ps_entries],
        }


def validate_snapshot(snapshot: MemorySnapshot) -> None:
    """
    Raises ValueError on invalid snapshot
    """
    if not is_valid_instance_id(snapshot.id):
        raise ValueError(f"id must be 8 lower-case hex chars, got {snapshot.id!r}")

    for name in ("total", "free", "available"):
        if getattr(snapshot, name) < 0:
            raise ValueError(f"{name} must be >= 0")

    for entry in snapshot.ps_entries:
        if entry.pid < 0:
            raise ValueError(f"psEntries pid must be >= 0, got {entry.pid}")


def snapshot_to_json(snapshot: MemorySnapshot) -> str:
    """
    Serialize a MemorySnapshot

    sort_keys + compact separators keep the body stable across runs
    """
    return json.dumps(
        snapshot.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def build_snapshot_from_collectors(
    instance_id: str,
    *,
    meminfo: MemInfoResult | None = None,
    runtime: RuntimeResult | None = None,
    processes: list[ProcessResult] | None = None,
) -> MemorySnapshot:
    """
    Assemble a MemorySnapshot from collector results

    Missing collector results leave zero values / an empty process list.
    """
    if meminfo is None:
        meminfo = MemInfoResult()
    if runtime is None:
        runtime = RuntimeResult()

    entries = tuple(
        ProcessSample(
            pid=proc.pid,
            user=proc.user,
            vm_rss=proc.vm_rss_kib,
            vm_size=proc.vm_size_kib,
            name=proc.name,
            cpu_usage=proc.cpu_usage,
        )
        for proc in (processes or [])
    )

    snapshot = MemorySnapshot(
        id=instance_id,
        total=meminfo.total,
        free=meminfo.free,
        available=meminfo.available,
        runtime=RuntimeMemoryStats(
            rss=runtime.rss_kib,
            vms=runtime.vms_kib,
            shared=runtime.shared_kib,
            data=runtime.data_kib,
            max_rss=runtime.max_rss_kib,
            traced_current=runtime.traced_current_kib,
            traced_peak=runtime.traced_peak_kib,
            allocated_blocks=runtime.allocated_blocks,
            gc_objects=runtime.gc_objects,
            gc_collections=runtime.gc_collections,
            threads=runtime.threads,
        ),
        ps_entries=entries,
    )

    validate_snapshot(snapshot)
    return snapshot
