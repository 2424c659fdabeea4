"""
memstat.server
AUTHOR: carter-vin

HTTP exposition of memory snapshots

Two bindings serving the same body:
- stdlib: BaseHTTPRequestHandler on a ThreadingHTTPServer
- flask: small app factory

Contract:
- GET returns 200 with the snapshot JSON
- Content-Type: application/json, explicit Content-Length, CORS open to all origins
- collection / serialization errors are logged, never turned into a non-200
"""

from __future__ import annotations

import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable

from flask import Flask, Response, request

from memstat.aggregate import collect_snapshot
from memstat.config import SERVICE_VERSION, ServerConfig
from memstat.identity import is_valid_instance_id
from memstat.logging import emit_event
from memstat.model import snapshot_to_json

JSON_CONTENT_TYPE = "application/json"

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def render_stats(
    instance_id: str,
    config: ServerConfig,
    *,
    path: str = "/",
    backend: str = "stdlib",
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """
    Collect a snapshot and return the response body

    Returns b"" when serialization fails.
    """
    start = time.monotonic()
    result = collect_snapshot(instance_id, config, sleep=sleep)

    body = b""
    try:
        body = snapshot_to_json(result.snapshot).encode("utf-8")
    except (TypeError, ValueError) as e:
        emit_event(
            "serialize_failed",
            service_version=SERVICE_VERSION,
            backend=backend,
            error_type=type(e).__name__,
            message=str(e),
        )

    emit_event(
        "stats_request",
        service_version=SERVICE_VERSION,
        backend=backend,
        path=path,
        elapsed_ms=int((time.monotonic() - start) * 1000),
        ps_entries=len(result.snapshot.ps_entries),
        degraded=not result.ok,
        bytes=len(body),
    )
    return body


def _check_instance_id(instance_id: str) -> None:
    # Checked once at construction; a bad id would otherwise fail every request
    if not is_valid_instance_id(instance_id):
        raise ValueError(f"instance_id must be 8 lower-case hex chars, got {instance_id!r}")


# -----------------------------
# STDLIB BINDING
# -----------------------------
class StatsHTTPServer(ThreadingHTTPServer):
    """
    ThreadingHTTPServer carrying the per-service state handlers need
    """

    daemon_threads = True

    def __init__(
        self,
        config: ServerConfig,
        instance_id: str,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        _check_instance_id(instance_id)
        self.config = config
        self.instance_id = instance_id
        self.sleep = sleep
        super().__init__((config.host, config.port), StatsRequestHandler)


class StatsRequestHandler(BaseHTTPRequestHandler):
    server: StatsHTTPServer

    server_version = f"memstat/{SERVICE_VERSION}"

    def do_GET(self) -> None:
        body = render_stats(
            self.server.instance_id,
            self.server.config,
            path=self.path,
            backend="stdlib",
            sleep=self.server.sleep,
        )

        self.send_response(200)
        self.send_header("Content-Type", JSON_CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        self.end_headers()

        try:
            self.wfile.write(body)
        except OSError as e:
            # Client went away mid-response
            emit_event(
                "response_write_failed",
                service_version=SERVICE_VERSION,
                backend="stdlib",
                error_type=type(e).__name__,
                message=str(e),
            )

    def log_message(self, format, *args) -> None:
        # Requests are reported through stats_request events
        pass


# -----------------------------
# FLASK BINDING
# -----------------------------
def create_app(
    config: ServerConfig,
    instance_id: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Flask:
    """
    Build the Flask binding; "/" and "/memory" serve the same snapshot
    """
    _check_instance_id(instance_id)
    app = Flask(__name__)

    def memory() -> Response:
        body = render_stats(
            instance_id,
            config,
            path=request.path,
            backend="flask",
            sleep=sleep,
        )
        return Response(body, status=200, mimetype=JSON_CONTENT_TYPE, headers=CORS_HEADERS)

    app.add_url_rule("/", "memory", memory, methods=["GET"])
    app.add_url_rule("/memory", "memory_alias", memory, methods=["GET"])
    return app
