"""Shared fixtures: agent payloads and fake transports."""

import json
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import pytest
import requests

from filtop.errors import FetchError
from filtop.models import Input, Snapshot, decode_inputs, decode_stats


def make_stats_payload(
    *,
    total_ms: int = 500,
    uptime_ms: int = 10_000,
    rss: int = 50 * 1024 * 1024,
    filled: int = 50,
    max_events: int = 1000,
    running: int = 3,
    open_files: int = 7,
    modules: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a /stats body shaped like the agent's."""
    return {
        "beat": {
            "cpu": {
                "system": {"ticks": 10, "time": {"ms": 100}},
                "user": {"ticks": 40, "time": {"ms": 400}},
                "total": {"ticks": 50, "time": {"ms": total_ms}, "value": total_ms},
            },
            "memstats": {"memory_alloc": 12_345, "rss": rss, "gc_next": 99},
            "info": {"uptime": {"ms": uptime_ms}, "ephemeral_id": "abc"},
        },
        "libbeat": {
            "pipeline": {
                "queue": {"filled": {"events": filled, "pct": 0.05}, "max_events": max_events},
                "events": {"total": 100, "dropped": 1, "failed": 2, "filtered": 3, "active": 0},
            },
            "output": {"type": "elasticsearch"},
        },
        "filebeat": {
            "harvester": {
                "running": running,
                "open_files": open_files,
                "closed": 4,
                "started": 9,
                "skipped": 2,
            },
            "modules": {
                "list": modules
                if modules is not None
                else [
                    {"name": "nginx", "enabled": True, "errors": 0},
                    {"name": "system", "enabled": False, "errors": 3},
                ]
            },
        },
        "system": {"load": {"1": 2.0, "norm": {"1": 0.25, "5": 0.5, "15": 0.125}}},
    }


def make_input_payload(
    id: str = "udp-1",
    input: str = "udp",
    device: str = "eth0",
    throughput_bytes: float = 1234.5678,
    events: int = 10,
) -> dict[str, Any]:
    """Build one element of the /inputs array."""
    return {
        "id": id,
        "input": input,
        "device": device,
        "packets": 20,
        "bytes": 2048,
        "events": events,
        "active": True,
        "files": 1,
        "arrival_period": {"histogram": {"p50": 1.5, "count": 4, "note": "n/a"}},
        "processing_time": {"histogram": {"max": 2.25}},
        "throughput": {"bytes": throughput_bytes, "events": 3.5},
        "unknown_field": [1, 2, 3],
    }


class FakeSource:
    """In-memory stats source; failures are toggled per endpoint."""

    def __init__(
        self,
        stats: dict[str, Any] | None = None,
        inputs: list[dict[str, Any]] | None = None,
    ) -> None:
        self.stats = stats if stats is not None else make_stats_payload()
        self.inputs = inputs if inputs is not None else []
        self.fail_stats = False
        self.fail_inputs = False
        self.stats_calls = 0
        self.inputs_calls = 0

    def fetch_stats(self) -> Snapshot:
        self.stats_calls += 1
        if self.fail_stats:
            raise FetchError("http://fake/stats", "connection refused")
        return decode_stats(self.stats)

    def fetch_inputs(self) -> tuple[Input, ...]:
        self.inputs_calls += 1
        if self.fail_inputs:
            raise FetchError("http://fake/inputs", "status code 500")
        return decode_inputs(self.inputs)


class FakeHttpResponse:
    """Minimal response object for mocked HTTP calls."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str | None = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Stand-in for requests.Session routing URLs to canned responses."""

    def __init__(self, routes: dict[str, Callable[[], FakeHttpResponse]]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, float | None]] = []
        self.closed = False

    def get(self, url: str, timeout: float | None = None) -> FakeHttpResponse:
        self.calls.append((url, timeout))
        handler = self.routes.get(url)
        if handler is None:
            raise requests.ConnectionError(f"no route to {url}")
        return handler()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def stats_payload() -> dict[str, Any]:
    return make_stats_payload()


@pytest.fixture
def inputs_payload() -> list[dict[str, Any]]:
    return [
        make_input_payload(id="udp-1", input="udp", device="eth0", throughput_bytes=1234.5678),
        make_input_payload(id="log-1", input="log", device="sda", throughput_bytes=0.5, events=99),
    ]


@pytest.fixture
def fake_source(stats_payload, inputs_payload) -> FakeSource:
    return FakeSource(stats_payload, inputs_payload)


class AgentState:
    """What the local fake agent answers; mutated by tests while it serves."""

    def __init__(self) -> None:
        self.stats: Any = make_stats_payload()
        self.inputs: Any = [make_input_payload()]
        self.status = 200
        self.garbage = False
        self.requests = 0


@pytest.fixture
def agent_server():
    """Serve /stats and /inputs from a local HTTP server on a free port."""
    state = AgentState()

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            state.requests += 1
            routes = {"/stats": state.stats, "/inputs": state.inputs}
            if self.path not in routes:
                self.send_error(404)
                return
            body = b"{truncated" if state.garbage else json.dumps(routes[self.path]).encode()
            self.send_response(state.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args) -> None:
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[1], state
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5.0)
