from __future__ import annotations

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from canaries.config import CanaryConfig
from canaries.flows import heartbeat
from canaries.flows.heartbeat import build_request_options
from canaries.runtime import CanaryStepError


class _Handler(BaseHTTPRequestHandler):
    status = 200

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        return

    def do_GET(self) -> None:  # noqa: N802
        body = b"<html><body>Bank of Anthos</body></html>"
        self.send_response(type(self).status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


@pytest.fixture(scope="module")
def local_server_base_url() -> str:
    httpd = HTTPServer(("127.0.0.1", 0), _Handler)
    host, port = httpd.server_address
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        thread.join(timeout=5)
        httpd.server_close()


@pytest.fixture()
def server_status(local_server_base_url: str):
    def _set(status: int) -> str:
        _Handler.status = status
        return local_server_base_url

    yield _set
    _Handler.status = 200


def test_embedded_port_is_split_from_hostname() -> None:
    opts = build_request_options("http://example.com:8080")
    assert opts.hostname == "example.com"
    assert opts.port == 8080
    assert opts.path == "/"
    assert opts.method == "GET"


def test_scheme_and_trailing_slash_are_stripped() -> None:
    opts = build_request_options("https://bank.example.com/")
    assert opts.hostname == "bank.example.com"
    assert opts.port == 80
    assert opts.protocol == "http:"
    assert opts.url == "http://bank.example.com:80/"


def test_bare_hostname_defaults_to_port_80() -> None:
    opts = build_request_options("localhost")
    assert (opts.hostname, opts.port) == ("localhost", 80)
    assert opts.headers == {"User-Agent": "CloudWatch-Synthetics-Canary"}


def test_invalid_port_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_request_options("http://example.com:abc")


@pytest.mark.asyncio
async def test_heartbeat_passes_and_records_http_exchange(server_status) -> None:
    base_url = server_status(200)
    config = CanaryConfig(frontend_url=base_url, write_artifacts=False)

    result = await heartbeat.run_canary(config)

    assert result.ok is True
    (step,) = result.steps
    assert step.name == "Homepage Check"
    assert step.http is not None
    assert step.http["request"]["headers"]["user-agent"] == "CloudWatch-Synthetics-Canary"
    assert "body" not in step.http["request"]
    assert step.http["response"]["status_code"] == 200
    assert step.http["response"]["headers"]["content-type"].startswith("text/html")
    assert "Bank of Anthos" in step.http["response"]["body"]


@pytest.mark.asyncio
async def test_heartbeat_fails_on_server_error(server_status) -> None:
    base_url = server_status(500)
    config = CanaryConfig(frontend_url=base_url, write_artifacts=False)

    result = await heartbeat.run_canary(config)

    assert result.ok is False
    assert result.error == "Failed: 500 Internal Server Error"
    assert result.steps[0].status == "failed"
    assert result.steps[0].http["response"]["status_code"] == 500


@pytest.mark.asyncio
async def test_handler_reads_environment_and_raises_on_failure(server_status, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CANARY_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("CANARY_WRITE_ARTIFACTS", "false")

    monkeypatch.setenv("FRONTEND_URL", server_status(200))
    result = await heartbeat.handler()
    assert result.ok is True

    monkeypatch.setenv("FRONTEND_URL", server_status(503))
    with pytest.raises(CanaryStepError, match="503"):
        await heartbeat.handler()
