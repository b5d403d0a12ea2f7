from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx


DEFAULT_HEADERS = {
    "User-Agent": "CloudWatch-Synthetics-Canary",
    "Accept": "application/json",
}
DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class ProbeTarget:
    scheme: str
    hostname: str
    port: int

    def url_for(self, path: str) -> str:
        p = path if path.startswith("/") else "/" + path
        return f"{self.scheme}://{self.hostname}:{self.port}{p}"


@dataclass(frozen=True)
class ProbeResponse:
    status_code: int
    headers: dict[str, str]
    body: str


def parse_probe_target(base_url: str) -> ProbeTarget:
    """
    Split the configured base URL into scheme/hostname/port once per run.
    Missing ports default to 443 for https and 80 otherwise.
    """
    parts = urlsplit(str(base_url or "").strip())
    is_https = (parts.scheme or "").lower() == "https"
    hostname = parts.hostname or ""
    if not hostname:
        raise ValueError(f"invalid base url: {base_url!r}")
    port = parts.port or (443 if is_https else 80)
    return ProbeTarget(scheme="https" if is_https else "http", hostname=hostname, port=port)


async def make_request(
    client: httpx.AsyncClient,
    target: ProbeTarget,
    path: str,
    *,
    method: str = "GET",
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> ProbeResponse:
    """Issue one raw request. Redirects are not followed; transport errors propagate."""
    resp = await client.request(
        method,
        target.url_for(path),
        headers=DEFAULT_HEADERS,
        timeout=timeout_seconds,
        follow_redirects=False,
    )
    return ProbeResponse(
        status_code=int(resp.status_code),
        headers={k.lower(): v for k, v in resp.headers.items()},
        body=resp.text or "",
    )
