"""
memstat.config
AUTHOR: carter-vin

Service configuration

Values arrive from CLI options (with MEMSTAT_* env var fallbacks, see main.py);
this module only holds and validates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from memstat.collectors.meminfo import DEFAULT_PROC_ROOT
from memstat.collectors.processes import DEFAULT_MAX_WORKERS, DEFAULT_SAMPLE_WINDOW_S

SERVICE_VERSION = "0.1.0"

VALID_BACKENDS = {"stdlib", "flask"}


@dataclass(frozen=True)
class ServerConfig:
    """
    HTTP service configuration.

    proc_root:
    - base of the process pseudo-filesystem (override for fixtures / containers)
    sample_window_s:
    - wait between the two CPU tick samples of each process
    max_workers:
    - None samples every process on its own thread; a cap trades latency for threads
    """

    host: str = "0.0.0.0"
    port: int = 8080
    proc_root: Path = DEFAULT_PROC_ROOT
    sample_window_s: float = DEFAULT_SAMPLE_WINDOW_S
    max_workers: int | None = DEFAULT_MAX_WORKERS
    backend: str = "stdlib"


def validate_config(config: ServerConfig) -> None:
    """
    Raises ValueError on invalid config
    """
    if not 0 <= config.port <= 65535:
        raise ValueError(f"port must be in 0..65535, got {config.port}")
    if config.sample_window_s <= 0:
        raise ValueError("sample_window_s must be > 0")
    if config.max_workers is not None and config.max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    if config.backend not in VALID_BACKENDS:
        raise ValueError(f"backend must be: {sorted(VALID_BACKENDS)}")
