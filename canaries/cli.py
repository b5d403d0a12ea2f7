"""Run one or all canaries from the command line."""

from __future__ import annotations

import argparse
import asyncio
from typing import Awaitable, Callable

import structlog

from canaries.config import CanaryConfig, load_config
from canaries.flows import api_health, heartbeat, login_flow, transaction_flow
from canaries.log import configure_logging
from canaries.runtime import CanaryRunResult

logger = structlog.get_logger(__name__)

CANARIES: dict[str, Callable[[CanaryConfig], Awaitable[CanaryRunResult]]] = {
    login_flow.CANARY_NAME: login_flow.run_canary,
    transaction_flow.CANARY_NAME: transaction_flow.run_canary,
    api_health.CANARY_NAME: api_health.run_canary,
    heartbeat.CANARY_NAME: heartbeat.run_canary,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bank of Anthos synthetic canaries")
    parser.add_argument(
        "canary",
        nargs="?",
        default="all",
        choices=[*CANARIES.keys(), "all"],
        help="Canary to run (default: all)",
    )
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--json", action="store_true", help="Print one JSON result per canary")
    return parser


async def run_selected(names: list[str], config: CanaryConfig) -> list[CanaryRunResult]:
    """Run the named canaries one after another."""
    results: list[CanaryRunResult] = []
    for name in names:
        try:
            result = await CANARIES[name](config)
        except Exception as e:
            # Resource setup failed (e.g. browser launch) before any step ran.
            logger.error("Canary could not start", canary=name, error=str(e))
            result = CanaryRunResult(
                canary=name,
                status="failed",
                started_at="",
                elapsed_ms=0.0,
                steps=[],
                error=str(e),
                exception=e,
            )
        results.append(result)
    return results


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(config.log_level)

    names = list(CANARIES.keys()) if args.canary == "all" else [args.canary]
    results = asyncio.run(run_selected(names, config))

    for result in results:
        if args.json:
            print(result.to_json())
        else:
            line = f"{result.canary}: {result.status.upper()}"
            if result.error:
                line += f" - {result.error}"
            print(line)

    failed = [r.canary for r in results if not r.ok]
    if failed:
        logger.error("Canaries failed", failed=failed)
        return 1
    return 0
