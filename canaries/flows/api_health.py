"""API health canary: raw HTTP probes against the frontend's conventional paths.

Only the root and login probes are fatal. The ready, version and static asset
probes are diagnostic and never fail the run.
"""

from __future__ import annotations

import httpx
import structlog

from canaries.config import CanaryConfig, load_config
from canaries.http_probe import ProbeTarget, make_request, parse_probe_target
from canaries.runtime import CanaryRunResult, CanaryRuntime, CanaryStepError

logger = structlog.get_logger(__name__)

CANARY_NAME = "api-health"

ROOT_ALLOWED_STATUSES = (200, 302)
VERSION_CANDIDATES = ("/version", "/health", "/healthz", "/_health")
STATIC_ASSET_PATH = "/static/styles/cymbal.css"
BODY_SNIPPET_CHARS = 100


async def check_frontend_root(client: httpx.AsyncClient, target: ProbeTarget) -> int:
    logger.info("Checking frontend root endpoint")
    response = await make_request(client, target, "/")
    if response.status_code not in ROOT_ALLOWED_STATUSES:
        raise CanaryStepError(f"Frontend root returned {response.status_code}, expected 200 or 302")
    logger.info("Frontend root OK", status_code=response.status_code)
    return response.status_code


async def check_login_page(client: httpx.AsyncClient, target: ProbeTarget) -> int:
    logger.info("Checking login page")
    response = await make_request(client, target, "/login")
    if response.status_code != 200:
        raise CanaryStepError(f"Login page returned {response.status_code}, expected 200")
    logger.info("Login page OK", status_code=response.status_code)
    return response.status_code


async def check_ready_endpoint(client: httpx.AsyncClient, target: ProbeTarget) -> int | None:
    logger.info("Checking /ready endpoint")
    try:
        response = await make_request(client, target, "/ready")
    except httpx.HTTPError as e:
        logger.warning("Ready endpoint check failed", error=str(e) or type(e).__name__)
        return None

    logger.info("Ready endpoint responded", status_code=response.status_code)
    if response.status_code == 200:
        logger.info("Ready endpoint OK")
    elif response.status_code == 404:
        logger.info("Ready endpoint not found (404) - this is OK for frontend")
    else:
        logger.warning("Ready endpoint returned unexpected status", status_code=response.status_code)
    return response.status_code


async def probe_version_endpoints(
    client: httpx.AsyncClient,
    target: ProbeTarget,
    candidates: tuple[str, ...] = VERSION_CANDIDATES,
) -> str | None:
    """Return the first candidate path answering 200, probing no further."""
    logger.info("Checking version/health endpoints", candidates=list(candidates))
    for path in candidates:
        try:
            response = await make_request(client, target, path)
        except httpx.HTTPError as e:
            logger.debug("Version candidate unreachable", path=path, error=str(e) or type(e).__name__)
            continue
        if response.status_code == 200:
            logger.info(
                "Health endpoint OK",
                path=path,
                status_code=response.status_code,
                body=response.body[:BODY_SNIPPET_CHARS],
            )
            return path

    logger.info("No standard health endpoints found, but frontend is responding")
    return None


async def check_static_assets(client: httpx.AsyncClient, target: ProbeTarget) -> int | None:
    logger.info("Checking static assets", path=STATIC_ASSET_PATH)
    try:
        response = await make_request(client, target, STATIC_ASSET_PATH)
    except httpx.HTTPError as e:
        logger.warning("Static assets check failed", error=str(e) or type(e).__name__)
        return None

    if response.status_code == 200:
        logger.info("Static CSS OK")
    else:
        logger.warning("Static CSS returned unexpected status", status_code=response.status_code)
    return response.status_code


async def run_api_health(config: CanaryConfig, runtime: CanaryRuntime, client: httpx.AsyncClient) -> None:
    target = parse_probe_target(config.frontend_url)
    logger.info("Testing API endpoints", hostname=target.hostname, port=target.port)

    await runtime.execute_step("Frontend Root", lambda: check_frontend_root(client, target))
    await runtime.execute_step("Login Page", lambda: check_login_page(client, target))
    await runtime.execute_step("Ready Endpoint", lambda: check_ready_endpoint(client, target))
    await runtime.execute_step("Version Check", lambda: probe_version_endpoints(client, target))
    await runtime.execute_step("Static Assets", lambda: check_static_assets(client, target))


async def run_canary(config: CanaryConfig) -> CanaryRunResult:
    async with httpx.AsyncClient() as client:
        runtime = CanaryRuntime(CANARY_NAME, config, http_client=client)
        return await runtime.run(lambda: run_api_health(config, runtime, client))


async def handler() -> CanaryRunResult:
    result = await run_canary(load_config())
    result.raise_for_failure()
    return result
