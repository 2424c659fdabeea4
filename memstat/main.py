"""
memstat.main
------------
AUTHOR: carter-vin

PURPOSE:
- Stable CLI entrypoint for the memory stats service
- `serve` exposes snapshots over HTTP (stdlib or flask backend)
- `oneshot` prints one snapshot, handy for debugging on a host

Key contract:
- `memstat --help` shows a Commands section.
- every option falls back to a MEMSTAT_* env var.
"""

from __future__ import annotations

import contextlib
import os
import platform
import sys
import tracemalloc
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from memstat.aggregate import collect_snapshot
from memstat.config import SERVICE_VERSION, ServerConfig, validate_config
from memstat.identity import collect_instance_id
from memstat.logging import emit_event
from memstat.model import snapshot_to_json
from memstat.server import StatsHTTPServer, create_app

app = typer.Typer(
    add_completion=False,
    help="memstat: host memory and process stats over HTTP",
)

DEFAULTS = ServerConfig()


# -----------------------------
# DATA CLASSES
# -----------------------------
@dataclass(frozen=True)
class EnvironmentInfo:
    python_version: str
    os: str
    machine: str
    clk_tck: int | None
    utc_now: str


def collect_environment_info() -> EnvironmentInfo:
    try:
        clk_tck: int | None = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError, AttributeError):
        clk_tck = None

    return EnvironmentInfo(
        python_version=sys.version.split()[0],
        os=f"{platform.system()} {platform.release()}",
        machine=platform.machine(),
        clk_tck=clk_tck,
        utc_now=datetime.now(timezone.utc).isoformat(),
    )


def _build_config(**values) -> ServerConfig:
    config = ServerConfig(**values)
    try:
        validate_config(config)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    return config


def _maybe_start_tracemalloc(enabled: bool) -> None:
    if enabled and not tracemalloc.is_tracing():
        tracemalloc.start()


# -----------------------------
# ROOT COMMAND BEHAVIOR
# -----------------------------
@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """
    Print a hint when no subcommand is given
    """
    if ctx.invoked_subcommand is None:
        typer.echo("No command provided. Try: memstat --help")


# -----------------------------
# CLI COMMANDS
# -----------------------------
@app.command()
def version() -> None:
    """
    Print service version & runtime env
    """
    env = collect_environment_info()

    typer.echo(f"memstat v{SERVICE_VERSION}")
    typer.echo(f"python={env.python_version}")
    typer.echo(f"os={env.os}")
    typer.echo(f"machine={env.machine}")
    typer.echo(f"clk_tck={env.clk_tck}")
    typer.echo(f"utc_now={env.utc_now}")


@app.command("oneshot")
def oneshot(
    proc_root: str = typer.Option(
        str(DEFAULTS.proc_root),
        envvar="MEMSTAT_PROC_ROOT",
        help="Root of the process pseudo-filesystem.",
    ),
    window: float = typer.Option(
        DEFAULTS.sample_window_s,
        envvar="MEMSTAT_SAMPLE_WINDOW",
        help="Seconds between the two CPU samples of each process.",
    ),
    workers: Optional[int] = typer.Option(
        DEFAULTS.max_workers,
        envvar="MEMSTAT_MAX_WORKERS",
        help="Cap on processes sampled concurrently (default: all at once). "
        "A cap of N costs ceil(processes / N) windows.",
    ),
    trace_allocations: bool = typer.Option(
        False,
        "--tracemalloc",
        envvar="MEMSTAT_TRACEMALLOC",
        help="Start tracemalloc so tracedCurrent / tracedPeak are reported.",
    ),
) -> None:
    """
    Collect one snapshot and print it as JSON on stdout.

    Events go to stderr so stdout stays a single JSON document.
    """
    config = _build_config(
        proc_root=Path(proc_root),
        sample_window_s=window,
        max_workers=workers,
    )
    instance_id = collect_instance_id()
    _maybe_start_tracemalloc(trace_allocations)

    with contextlib.redirect_stdout(sys.stderr):
        result = collect_snapshot(instance_id.value, config)

    typer.echo(snapshot_to_json(result.snapshot))

    if result.processes_failed:
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option(
        DEFAULTS.host,
        envvar="MEMSTAT_HOST",
        help="Address to bind.",
    ),
    port: int = typer.Option(
        DEFAULTS.port,
        envvar="MEMSTAT_PORT",
        help="Port to bind.",
    ),
    proc_root: str = typer.Option(
        str(DEFAULTS.proc_root),
        envvar="MEMSTAT_PROC_ROOT",
        help="Root of the process pseudo-filesystem.",
    ),
    window: float = typer.Option(
        DEFAULTS.sample_window_s,
        envvar="MEMSTAT_SAMPLE_WINDOW",
        help="Seconds between the two CPU samples of each process.",
    ),
    workers: Optional[int] = typer.Option(
        DEFAULTS.max_workers,
        envvar="MEMSTAT_MAX_WORKERS",
        help="Cap on processes sampled concurrently (default: all at once). "
        "A cap of N costs ceil(processes / N) windows.",
    ),
    backend: str = typer.Option(
        DEFAULTS.backend,
        envvar="MEMSTAT_BACKEND",
        help="HTTP binding: stdlib or flask.",
    ),
    trace_allocations: bool = typer.Option(
        False,
        "--tracemalloc",
        envvar="MEMSTAT_TRACEMALLOC",
        help="Start tracemalloc so tracedCurrent / tracedPeak are reported.",
    ),
) -> None:
    """
    Serve memory snapshots over HTTP until interrupted.
    """
    config = _build_config(
        host=host,
        port=port,
        proc_root=Path(proc_root),
        sample_window_s=window,
        max_workers=workers,
        backend=backend,
    )
    # Generated once; every request reports the same id
    instance_id = collect_instance_id()
    _maybe_start_tracemalloc(trace_allocations)

    emit_event(
        "server_start",
        service_version=SERVICE_VERSION,
        backend=config.backend,
        host=config.host,
        port=config.port,
        proc_root=str(config.proc_root),
        instance_id=instance_id.value,
        instance_id_source=instance_id.source,
        tracemalloc=trace_allocations,
    )

    try:
        if config.backend == "flask":
            flask_app = create_app(config, instance_id.value)
            flask_app.run(host=config.host, port=config.port, threaded=True)
        else:
            with StatsHTTPServer(config, instance_id.value) as httpd:
                httpd.serve_forever()

    except KeyboardInterrupt:
        # Graceful shutdown on Ctrl+C
        pass

    finally:
        emit_event(
            "server_shutdown",
            service_version=SERVICE_VERSION,
            backend=config.backend,
            instance_id=instance_id.value,
        )


if __name__ == "__main__":
    app()
