"""
Shared fixtures: fake /proc trees under tmp_path
"""

from pathlib import Path

import pytest

MEMINFO_FIXTURE = """\
MemTotal:           1000 kB
MemFree:             200 kB
MemAvailable:        300 kB
Buffers:              10 kB
Cached:               50 kB
HugePages_Total:       0
Hugepagesize:       2048 kB
"""


def write_stat(root: Path, pid: int, *, name: str = "bash", utime: int = 10, stime: int = 5) -> None:
    """
    Write a /proc/<pid>/stat line; utime and stime are fields 14 and 15
    """
    line = (
        f"{pid} ({name}) S 1 {pid} {pid} 0 -1 4194560 100 0 0 0 "
        f"{utime} {stime} 0 0 20 0 1 0 100 10240000 512 18446744073709551615\n"
    )
    (root / str(pid) / "stat").write_text(line, encoding="utf-8")


def write_process(
    root: Path,
    pid: int,
    *,
    name: str = "bash",
    uid: int = 0,
    vm_rss: int | None = 2000,
    vm_size: int | None = 10000,
    utime: int = 10,
    stime: int = 5,
) -> Path:
    proc_dir = root / str(pid)
    proc_dir.mkdir(parents=True, exist_ok=True)

    lines = [
        f"Name:\t{name}",
        "Umask:\t0022",
        "State:\tS (sleeping)",
        f"Pid:\t{pid}",
        f"Uid:\t{uid}\t{uid}\t{uid}\t{uid}",
    ]
    if vm_size is not None:
        lines.append(f"VmSize:\t  {vm_size} kB")
    if vm_rss is not None:
        lines.append(f"VmRSS:\t   {vm_rss} kB")
    lines.append("Threads:\t1")

    (proc_dir / "status").write_text("\n".join(lines) + "\n", encoding="utf-8")
    write_stat(root, pid, name=name, utime=utime, stime=stime)
    return proc_dir


@pytest.fixture
def proc_root(tmp_path: Path) -> Path:
    """
    Fake /proc with meminfo, two processes and some non-process entries
    """
    root = tmp_path / "proc"
    root.mkdir()
    (root / "meminfo").write_text(MEMINFO_FIXTURE, encoding="utf-8")
    (root / "self").mkdir()
    (root / "sys").mkdir()

    write_process(root, 1, name="init")
    write_process(root, 42, name="worker", vm_rss=4096, vm_size=8192)
    return root


def no_sleep(_seconds: float) -> None:
    return None
