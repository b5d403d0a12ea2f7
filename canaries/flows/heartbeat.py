"""Heartbeat canary: one GET / through the runtime's HTTP step."""

from __future__ import annotations

import re

import httpx
import structlog

from canaries.config import CanaryConfig, load_config
from canaries.runtime import CanaryRunResult, CanaryRuntime, HttpRequestOptions, HttpStepConfig

logger = structlog.get_logger(__name__)

CANARY_NAME = "heartbeat"

DEFAULT_PORT = 80

_SCHEME_RE = re.compile(r"^https?://")
_LEADING_DIGITS_RE = re.compile(r"\d+")

HEARTBEAT_STEP_CONFIG = HttpStepConfig(
    include_request_headers=True,
    include_response_headers=True,
    include_request_body=False,
    include_response_body=True,
    restricted_headers=(),
    continue_on_http_step_failure=False,
)


def build_request_options(frontend_url: str) -> HttpRequestOptions:
    """
    Reduce the configured target to hostname/port: strip the scheme and a
    trailing slash, then split an embedded port (default 80).
    """
    hostname = _SCHEME_RE.sub("", str(frontend_url or "").strip())
    if hostname.endswith("/"):
        hostname = hostname[:-1]

    port = DEFAULT_PORT
    if ":" in hostname:
        host, raw_port = hostname.split(":", 1)
        hostname = host
        m = _LEADING_DIGITS_RE.match(raw_port)
        if m is None:
            raise ValueError(f"invalid port in target: {frontend_url!r}")
        port = int(m.group(0))

    return HttpRequestOptions(
        hostname=hostname,
        port=port,
        path="/",
        method="GET",
        protocol="http:",
        headers={"User-Agent": "CloudWatch-Synthetics-Canary"},
    )


async def run_heartbeat(config: CanaryConfig, runtime: CanaryRuntime) -> None:
    request_options = build_request_options(config.frontend_url)
    logger.info("Checking frontend", hostname=request_options.hostname, port=request_options.port)

    await runtime.execute_http_step("Homepage Check", request_options, HEARTBEAT_STEP_CONFIG)

    logger.info("Frontend heartbeat check passed")


async def run_canary(config: CanaryConfig) -> CanaryRunResult:
    async with httpx.AsyncClient() as client:
        runtime = CanaryRuntime(CANARY_NAME, config, http_client=client)
        return await runtime.run(lambda: run_heartbeat(config, runtime))


async def handler() -> CanaryRunResult:
    result = await run_canary(load_config())
    result.raise_for_failure()
    return result
