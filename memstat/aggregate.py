"""
memstat.aggregate
AUTHOR: carter-vin

Stats aggregation: run every collector, assemble one MemorySnapshot

Failure semantics:
- meminfo / runtime failures are logged; the snapshot keeps zero values
- process sampler failure is logged; psEntries stays empty and the failure is
  returned with the snapshot so callers can decide how degraded to respond
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from memstat.collectors.base import CollectorOutcome, run_collector
from memstat.collectors.meminfo import read_memory_stats
from memstat.collectors.processes import sample_processes
from memstat.collectors.runtime import collect_runtime_stats
from memstat.config import SERVICE_VERSION, ServerConfig
from memstat.identity import ensure_instance_id
from memstat.logging import emit_event
from memstat.model import MemorySnapshot, build_snapshot_from_collectors


@dataclass(frozen=True)
class SnapshotResult:
    snapshot: MemorySnapshot
    failures: list[CollectorOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def processes_failed(self) -> bool:
        return any(outcome.name == "processes" for outcome in self.failures)


def _log_failure(outcome: CollectorOutcome) -> None:
    emit_event(
        "collector_failed",
        service_version=SERVICE_VERSION,
        collector=outcome.name,
        error_type=outcome.error_type,
        message=outcome.error_message,
    )


def collect_snapshot(
    instance_id: str,
    config: ServerConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> SnapshotResult:
    """
    Collect one snapshot for a request
    """
    meminfo_out = run_collector("meminfo", read_memory_stats, config.proc_root)
    runtime_out = run_collector("runtime", collect_runtime_stats)
    procs_out = run_collector(
        "processes",
        sample_processes,
        config.proc_root,
        window_s=config.sample_window_s,
        max_workers=config.max_workers,
        sleep=sleep,
    )

    failures = [out for out in (meminfo_out, runtime_out, procs_out) if not out.ok]
    for outcome in failures:
        _log_failure(outcome)

    snapshot = build_snapshot_from_collectors(
        ensure_instance_id(instance_id),
        meminfo=meminfo_out.value if meminfo_out.ok else None,
        runtime=runtime_out.value if runtime_out.ok else None,
        processes=procs_out.value if procs_out.ok else None,
    )

    return SnapshotResult(snapshot=snapshot, failures=failures)
