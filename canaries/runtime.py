"""Step runtime: records, times and screenshots each named canary step."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

from .config import CanaryConfig

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class CanaryStepError(RuntimeError):
    """Fatal assertion raised from inside a step; aborts the remaining steps."""


@dataclass(frozen=True)
class HttpRequestOptions:
    hostname: str
    port: int = 80
    path: str = "/"
    method: str = "GET"
    protocol: str = "http:"
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    @property
    def url(self) -> str:
        scheme = self.protocol.rstrip(":") or "http"
        return f"{scheme}://{self.hostname}:{self.port}{self.path}"


@dataclass(frozen=True)
class HttpStepConfig:
    include_request_headers: bool = True
    include_response_headers: bool = True
    include_request_body: bool = False
    include_response_body: bool = True
    restricted_headers: tuple[str, ...] = ()
    continue_on_http_step_failure: bool = False
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class StepResult:
    name: str
    status: str  # passed|failed
    started_at: str
    elapsed_ms: float
    error: str | None = None
    screenshots: dict[str, str] = field(default_factory=dict)
    http: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "started_at": self.started_at,
            "elapsed_ms": self.elapsed_ms,
            "error": self.error,
            "screenshots": dict(self.screenshots),
        }
        if self.http is not None:
            out["http"] = self.http
        return out


@dataclass(frozen=True)
class CanaryRunResult:
    canary: str
    status: str  # passed|failed
    started_at: str
    elapsed_ms: float
    steps: list[StepResult]
    error: str | None = None
    exception: BaseException | None = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.status == "passed"

    def raise_for_failure(self) -> None:
        """Re-raise the original exception of a failed run."""
        if self.exception is not None:
            raise self.exception
        if not self.ok:
            raise CanaryStepError(self.error or f"{self.canary} failed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "canary": self.canary,
            "status": self.status,
            "started_at": self.started_at,
            "elapsed_ms": self.elapsed_ms,
            "error": self.error,
            "steps": [s.to_dict() for s in self.steps],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _slug(name: str) -> str:
    s = _SLUG_RE.sub("-", str(name or "").lower()).strip("-")
    return s[:60] or "step"


def _write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", errors="replace")
    except Exception:
        pass


def _filter_headers(headers: Any, restricted: tuple[str, ...]) -> dict[str, str]:
    deny = {h.lower() for h in restricted}
    out: dict[str, str] = {}
    for k, v in dict(headers or {}).items():
        key = str(k).lower()
        out[key] = "***" if key in deny else str(v)
    return out


class CanaryRuntime:
    """Runs the named steps of one canary strictly in order, failing fast."""

    def __init__(
        self,
        name: str,
        config: CanaryConfig,
        *,
        page: Any = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.name = name
        self.config = config
        self.page = page
        self.http_client = http_client
        self.steps: list[StepResult] = []

    @property
    def artifacts_dir(self) -> Path:
        return Path(self.config.artifacts_dir) / _slug(self.name)

    async def _screenshot(self, index: int, step_name: str, phase: str, out: dict[str, str]) -> None:
        if self.page is None or not self.config.write_artifacts:
            return
        filename = f"{index:02d}-{_slug(step_name)}-{phase}.png"
        path = self.artifacts_dir / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
        except Exception as e:
            logger.debug("Screenshot failed", canary=self.name, step=step_name, phase=phase, error=str(e))
            return
        out[phase] = filename

    async def _execute(
        self,
        step_name: str,
        action: Callable[[], Awaitable[T]],
        http: dict[str, Any] | None = None,
    ) -> T:
        index = len(self.steps) + 1
        started_at = _now_iso()
        started = time.perf_counter()
        screenshots: dict[str, str] = {}

        logger.info("Step started", canary=self.name, step=step_name)
        if self.config.screenshot_on_step_start:
            await self._screenshot(index, step_name, "start", screenshots)

        try:
            value = await action()
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
            if self.config.screenshot_on_step_failure:
                await self._screenshot(index, step_name, "failed", screenshots)
            self.steps.append(
                StepResult(
                    name=step_name,
                    status="failed",
                    started_at=started_at,
                    elapsed_ms=elapsed_ms,
                    error=str(e),
                    screenshots=screenshots,
                    http=http,
                )
            )
            logger.error("Step failed", canary=self.name, step=step_name, error=str(e), elapsed_ms=elapsed_ms)
            raise

        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
        if self.config.screenshot_on_step_success:
            await self._screenshot(index, step_name, "succeeded", screenshots)
        self.steps.append(
            StepResult(
                name=step_name,
                status="passed",
                started_at=started_at,
                elapsed_ms=elapsed_ms,
                screenshots=screenshots,
                http=http,
            )
        )
        logger.info("Step passed", canary=self.name, step=step_name, elapsed_ms=elapsed_ms)
        return value

    async def execute_step(self, step_name: str, action: Callable[[], Awaitable[T]]) -> T:
        """Run one named step; exceptions are recorded and re-raised unchanged."""
        return await self._execute(step_name, action)

    async def execute_http_step(
        self,
        step_name: str,
        request_options: HttpRequestOptions,
        step_config: HttpStepConfig | None = None,
    ) -> httpx.Response | None:
        """
        Issue one HTTP request as a step. Any status outside 2xx, or a transport
        error, fails the step. The failure is raised unless
        `continue_on_http_step_failure` is set, in which case None is returned.
        """
        cfg = step_config or HttpStepConfig()
        record: dict[str, Any] = {
            "request": {"method": request_options.method, "url": request_options.url},
        }
        if cfg.include_request_headers:
            record["request"]["headers"] = _filter_headers(request_options.headers, cfg.restricted_headers)
        if cfg.include_request_body:
            record["request"]["body"] = request_options.body

        async def _action() -> httpx.Response:
            client = self.http_client
            if client is None:
                async with httpx.AsyncClient() as own_client:
                    resp = await self._send(own_client, request_options, cfg)
            else:
                resp = await self._send(client, request_options, cfg)

            if cfg.include_request_headers:
                # What went over the wire, including headers the client added.
                record["request"]["headers"] = _filter_headers(resp.request.headers, cfg.restricted_headers)

            response: dict[str, Any] = {"status_code": resp.status_code, "reason": resp.reason_phrase}
            if cfg.include_response_headers:
                response["headers"] = _filter_headers(resp.headers, cfg.restricted_headers)
            if cfg.include_response_body:
                response["body"] = (resp.text or "")[:5000]
            record["response"] = response

            if not 200 <= resp.status_code <= 299:
                raise CanaryStepError(f"Failed: {resp.status_code} {resp.reason_phrase}".strip())
            return resp

        try:
            return await self._execute(step_name, _action, http=record)
        except Exception:
            if not cfg.continue_on_http_step_failure:
                raise
            logger.warning("HTTP step failed, continuing", canary=self.name, step=step_name)
            return None

    async def _send(
        self,
        client: httpx.AsyncClient,
        request_options: HttpRequestOptions,
        cfg: HttpStepConfig,
    ) -> httpx.Response:
        return await client.request(
            request_options.method,
            request_options.url,
            headers=request_options.headers,
            content=request_options.body.encode("utf-8") if request_options.body is not None else None,
            timeout=cfg.timeout_seconds,
            follow_redirects=False,
        )

    async def run(self, flow: Callable[[], Awaitable[Any]]) -> CanaryRunResult:
        """
        Run a whole canary. Never raises: a failing step yields a failed result
        that keeps the original exception for `raise_for_failure`.
        """
        started_at = _now_iso()
        started = time.perf_counter()
        logger.info("Canary started", canary=self.name, target=self.config.frontend_url)

        try:
            await flow()
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
            result = CanaryRunResult(
                canary=self.name,
                status="failed",
                started_at=started_at,
                elapsed_ms=elapsed_ms,
                steps=list(self.steps),
                error=str(e),
                exception=e,
            )
            logger.error("Canary failed", canary=self.name, error=str(e), elapsed_ms=elapsed_ms)
        else:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
            result = CanaryRunResult(
                canary=self.name,
                status="passed",
                started_at=started_at,
                elapsed_ms=elapsed_ms,
                steps=list(self.steps),
            )
            logger.info("Canary completed successfully", canary=self.name, elapsed_ms=elapsed_ms)

        if self.config.write_artifacts:
            _write_text(self.artifacts_dir / "result.json", json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return result
