"""
memstat.collectors.runtime
AUTHOR: carter-vin

Runtime memory collector for the serving interpreter itself
- process memory via psutil
- interpreter allocator / GC counters via stdlib introspection
- byte counters reported in KiB, counts left as counts
"""

from __future__ import annotations

import gc
import resource
import sys
import threading
import tracemalloc
from dataclasses import dataclass

import psutil


@dataclass(frozen=True)
class RuntimeResult:
    rss_kib: float = 0.0
    vms_kib: float = 0.0
    shared_kib: float = 0.0
    data_kib: float = 0.0
    max_rss_kib: float = 0.0
    traced_current_kib: float = 0.0
    traced_peak_kib: float = 0.0
    allocated_blocks: int = 0
    gc_objects: int = 0
    gc_collections: int = 0
    threads: int = 0


def _kib(value: int) -> float:
    return value / 1024.0


def collect_runtime_stats() -> RuntimeResult:
    """
    Snapshot memory counters of the current interpreter process

    tracemalloc values are 0 unless tracing was started (PYTHONTRACEMALLOC)
    """
    mem = psutil.Process().memory_info()

    traced_current, traced_peak = (0, 0)
    if tracemalloc.is_tracing():
        traced_current, traced_peak = tracemalloc.get_traced_memory()

    # ru_maxrss is already KiB on Linux
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss

    return RuntimeResult(
        rss_kib=_kib(mem.rss),
        vms_kib=_kib(mem.vms),
        shared_kib=_kib(getattr(mem, "shared", 0)),
        data_kib=_kib(getattr(mem, "data", 0)),
        max_rss_kib=float(max_rss),
        traced_current_kib=_kib(traced_current),
        traced_peak_kib=_kib(traced_peak),
        allocated_blocks=sys.getallocatedblocks(),
        gc_objects=len(gc.get_objects()),
        gc_collections=sum(gen["collections"] for gen in gc.get_stats()),
        threads=threading.active_count(),
    )
