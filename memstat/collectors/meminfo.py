"""
memstat.collectors.meminfo
AUTHOR: carter-vin

System memory collector
- Linux only, reads <proc_root>/meminfo
- values stay in KiB, as the kernel reports them
- stdlib only
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


DEFAULT_PROC_ROOT = Path("/proc")

MEMINFO_FIELDS = {
    "MemTotal": "total",
    "MemFree": "free",
    "MemAvailable": "available",
}


@dataclass(frozen=True)
class MemInfoResult:
    total: int = 0
    free: int = 0
    available: int = 0


def _to_int(raw: str) -> int:
    if raw == "":
        return 0
    # Kernel output is trusted; a non-numeric value raises ValueError
    return int(raw, 10)


def parse_line(raw: str) -> tuple[str, int]:
    """
    Split one meminfo line into (key, value)

    "MemTotal:       16318412 kB" -> ("MemTotal", 16318412)
    "Key:     kB"                 -> ("Key", 0)
    """
    text = raw.rstrip("\r\n")
    if text.endswith("kB"):
        text = text[: -len("kB")]

    text = "".join(text.split())
    key, sep, value = text.partition(":")
    if not sep:
        raise ValueError(f"meminfo line has no key separator: {raw!r}")

    return key, _to_int(value)


def read_memory_stats(proc_root: Path | str = DEFAULT_PROC_ROOT) -> MemInfoResult:
    """
    Read MemTotal / MemFree / MemAvailable from <proc_root>/meminfo

    Failure semantics:
    - raises OSError when meminfo cannot be opened (caller decides)
    - raises ValueError on a malformed numeric field
    """
    path = Path(proc_root) / "meminfo"
    values = {name: 0 for name in MEMINFO_FIELDS.values()}

    with path.open(encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            key, value = parse_line(line)
            field = MEMINFO_FIELDS.get(key)
            if field is not None:
                values[field] = value

    return MemInfoResult(**values)
