"""memstat.collectors package exports."""

from memstat.collectors.meminfo import read_memory_stats
from memstat.collectors.processes import list_pids, sample_processes
from memstat.collectors.runtime import collect_runtime_stats

__all__ = [
    "collect_runtime_stats",
    "list_pids",
    "read_memory_stats",
    "sample_processes",
]
