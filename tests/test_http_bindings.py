"""
Contract tests for the HTTP exposition (stdlib and flask bindings)
"""

import json
import threading
import urllib.request
from pathlib import Path

import pytest

from memstat.config import ServerConfig
from memstat.server import StatsHTTPServer, create_app

from conftest import no_sleep


@pytest.fixture
def stdlib_server(proc_root: Path):
    config = ServerConfig(host="127.0.0.1", port=0, proc_root=proc_root)
    httpd = StatsHTTPServer(config, "1a2b3c4d", sleep=no_sleep)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield httpd
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


def _get(httpd: StatsHTTPServer, path: str = "/"):
    host, port = httpd.server_address[:2]
    return urllib.request.urlopen(f"http://{host}:{port}{path}", timeout=10)


def test_stdlib_end_to_end(stdlib_server) -> None:
    with _get(stdlib_server) as resp:
        body = resp.read()
        assert resp.status == 200
        assert resp.headers["Content-Type"] == "application/json"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert int(resp.headers["Content-Length"]) == len(body)

    payload = json.loads(body)
    assert payload["id"] == "1a2b3c4d"
    assert (payload["total"], payload["free"], payload["available"]) == (1000, 200, 300)
    assert len(payload["psEntries"]) == 2


def test_stdlib_id_is_stable_across_requests(stdlib_server) -> None:
    with _get(stdlib_server) as first, _get(stdlib_server, "/anything") as second:
        assert json.loads(first.read())["id"] == json.loads(second.read())["id"]


def test_stdlib_degraded_response_is_still_200(stdlib_server, proc_root: Path) -> None:
    (proc_root / "meminfo").unlink()

    with _get(stdlib_server) as resp:
        assert resp.status == 200
        payload = json.loads(resp.read())

    assert payload["total"] == 0
    assert len(payload["psEntries"]) == 2


def test_flask_end_to_end(proc_root: Path) -> None:
    app = create_app(ServerConfig(proc_root=proc_root), "1a2b3c4d", sleep=no_sleep)
    client = app.test_client()

    for path in ("/", "/memory"):
        resp = client.get(path)

        assert resp.status_code == 200
        assert resp.headers["Content-Type"] == "application/json"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert int(resp.headers["Content-Length"]) == len(resp.data)

        payload = resp.get_json()
        assert payload["id"] == "1a2b3c4d"
        assert payload["total"] == 1000
        assert len(payload["psEntries"]) == 2


def test_flask_process_failure_is_still_200(proc_root: Path) -> None:
    (proc_root / "1" / "status").unlink()
    app = create_app(ServerConfig(proc_root=proc_root), "1a2b3c4d", sleep=no_sleep)

    resp = app.test_client().get("/")

    assert resp.status_code == 200
    assert resp.get_json()["psEntries"] == []


@pytest.mark.parametrize("bad_id", ["XYZ", "", "1A2B3C4D", "123456789"])
def test_bindings_reject_bad_instance_id_at_construction(proc_root: Path, bad_id: str) -> None:
    config = ServerConfig(host="127.0.0.1", port=0, proc_root=proc_root)

    with pytest.raises(ValueError, match="instance_id"):
        StatsHTTPServer(config, bad_id, sleep=no_sleep)
    with pytest.raises(ValueError, match="instance_id"):
        create_app(config, bad_id, sleep=no_sleep)
