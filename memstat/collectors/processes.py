"""
memstat.collectors.processes
AUTHOR: carter-vin

Per-process collector
- enumerate numeric entries under <proc_root>
- read <pid>/status for name, RSS, VM size, owner
- read <pid>/stat twice, one sampling window apart, for CPU usage

Failure semantics:
- status or first stat read failure aborts the whole enumeration (raises)
- second stat read failure means the process exited mid-window; reuse the first sample

Each "first sample -> wait -> second sample" unit runs on a worker thread so a
full scan costs about one window instead of one window per process.
"""

from __future__ import annotations

import os
import pwd
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from memstat.collectors.meminfo import DEFAULT_PROC_ROOT

PID_PATTERN = re.compile(r"[0-9]+")

DEFAULT_SAMPLE_WINDOW_S = 1.0
# None: one worker per process, so a scan costs about one window.
# A cap trades latency for thread count: ceil(N / cap) windows.
DEFAULT_MAX_WORKERS: int | None = None

# Field positions in /proc/<pid>/stat counted after the "(comm)" field;
# utime and stime are fields 14 and 15 of the full line.
_STAT_UTIME_INDEX = 11
_STAT_STIME_INDEX = 12


@dataclass(frozen=True)
class StatusResult:
    name: str
    user: str
    vm_rss_kib: int
    vm_size_kib: int


@dataclass(frozen=True)
class ProcessResult:
    pid: int
    user: str
    vm_rss_kib: int
    vm_size_kib: int
    name: str
    cpu_usage: float


def clock_ticks_per_second() -> int:
    """
    Kernel clock tick rate used for CPU time accounting (usually 100)
    """
    return os.sysconf("SC_CLK_TCK")


def list_pids(proc_root: Path | str = DEFAULT_PROC_ROOT) -> list[int]:
    """
    List numeric entries under proc_root

    Order follows the directory listing and is not guaranteed.
    """
    return [
        int(entry.name)
        for entry in Path(proc_root).iterdir()
        if PID_PATTERN.fullmatch(entry.name)
    ]


def _parse_kib(value: str) -> int:
    # "  123456 kB" -> 123456
    parts = value.split()
    if not parts:
        return 0
    return int(parts[0])


def _resolve_user(uid_field: str) -> str:
    parts = uid_field.split()
    if not parts:
        return ""
    uid = parts[0]  # real uid
    try:
        return pwd.getpwuid(int(uid)).pw_name
    except KeyError:
        return uid


def parse_status(contents: str) -> StatusResult:
    """
    Parse the body of /proc/<pid>/status

    Kernel threads have no VmRSS / VmSize lines; those stay 0.
    """
    name = ""
    user = ""
    vm_rss = 0
    vm_size = 0

    for line in contents.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "Name":
            name = value.strip()
        elif key == "Uid":
            user = _resolve_user(value)
        elif key == "VmRSS":
            vm_rss = _parse_kib(value)
        elif key == "VmSize":
            vm_size = _parse_kib(value)

    return StatusResult(name=name, user=user, vm_rss_kib=vm_rss, vm_size_kib=vm_size)


def read_status(pid: int, proc_root: Path | str = DEFAULT_PROC_ROOT) -> StatusResult:
    path = Path(proc_root) / str(pid) / "status"
    return parse_status(path.read_text(encoding="utf-8", errors="replace"))


def parse_cpu_ticks(contents: str) -> int:
    """
    Return utime + stime from the body of /proc/<pid>/stat

    The command name sits in parentheses and may contain spaces, so fields are
    counted after the last ")".
    """
    _, sep, rest = contents.rpartition(")")
    if not sep:
        raise ValueError("error parsing stat: missing command field")

    fields = rest.split()
    if len(fields) <= _STAT_STIME_INDEX:
        raise ValueError(f"error parsing stat: expected utime/stime, got {len(fields)} fields")

    return int(fields[_STAT_UTIME_INDEX]) + int(fields[_STAT_STIME_INDEX])


def read_cpu_ticks(pid: int, proc_root: Path | str = DEFAULT_PROC_ROOT) -> int:
    path = Path(proc_root) / str(pid) / "stat"
    return parse_cpu_ticks(path.read_text(encoding="utf-8", errors="replace"))


def cpu_usage_percent(first: int, second: int, clk_tck: int, window_s: float) -> float:
    """
    Percentage of one CPU used over the window
    """
    return (second - first) / clk_tck * 100.0 / window_s


def sample_process(
    pid: int,
    *,
    proc_root: Path | str = DEFAULT_PROC_ROOT,
    clk_tck: int,
    window_s: float = DEFAULT_SAMPLE_WINDOW_S,
    sleep: Callable[[float], None] = time.sleep,
) -> ProcessResult:
    """
    Sample one process: status snapshot plus two CPU tick reads one window apart
    """
    status = read_status(pid, proc_root)
    first = read_cpu_ticks(pid, proc_root)

    sleep(window_s)

    try:
        second = read_cpu_ticks(pid, proc_root)
    except (OSError, ValueError):
        # Process exited during the window
        second = first

    return ProcessResult(
        pid=pid,
        user=status.user,
        vm_rss_kib=status.vm_rss_kib,
        vm_size_kib=status.vm_size_kib,
        name=status.name,
        cpu_usage=cpu_usage_percent(first, second, clk_tck, window_s),
    )


def sample_processes(
    proc_root: Path | str = DEFAULT_PROC_ROOT,
    *,
    window_s: float = DEFAULT_SAMPLE_WINDOW_S,
    clk_tck: int | None = None,
    max_workers: int | None = DEFAULT_MAX_WORKERS,
    sleep: Callable[[float], None] = time.sleep,
) -> list[ProcessResult]:
    """
    Sample every process under proc_root

    Raises the first per-process failure once all workers have finished.
    """
    if clk_tck is None:
        clk_tck = clock_ticks_per_second()

    pids = list_pids(proc_root)
    if not pids:
        return []

    workers = len(pids) if max_workers is None else max(1, min(max_workers, len(pids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="memstat-sampler") as pool:
        futures = [
            pool.submit(
                sample_process,
                pid,
                proc_root=proc_root,
                clk_tck=clk_tck,
                window_s=window_s,
                sleep=sleep,
            )
            for pid in pids
        ]
        return [future.result() for future in futures]
