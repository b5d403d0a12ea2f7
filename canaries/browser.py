from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

import structlog
from playwright.async_api import Browser, Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import CanaryConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SelectorLookup:
    selector: str
    # None: look up once without waiting.
    timeout_ms: int | None = None


def find_chromium_executable(override: str | None = None) -> str | None:
    for path in (override, os.getenv("CHROMIUM_PATH")):
        if path and Path(path).exists():
            return path

    candidates = [
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    ]
    for path in candidates:
        if Path(path).exists():
            return path
    return None


@asynccontextmanager
async def launch_browser(config: CanaryConfig) -> AsyncIterator[Browser]:
    launch_kwargs: dict[str, Any] = {
        "headless": config.browser_headless,
        # Avoid renderer crashes when /dev/shm is tiny.
        "args": ["--no-sandbox", "--disable-dev-shm-usage"],
    }
    chromium_path = find_chromium_executable(config.chromium_path)
    if chromium_path:
        launch_kwargs["executable_path"] = chromium_path

    async with async_playwright() as p:
        browser = await p.chromium.launch(**launch_kwargs)
        try:
            yield browser
        finally:
            try:
                await browser.close()
            except Exception:
                pass


@asynccontextmanager
async def open_page(browser: Browser, config: CanaryConfig) -> AsyncIterator[Page]:
    context = await browser.new_context(
        viewport={"width": config.viewport_width, "height": config.viewport_height}
    )
    page = await context.new_page()
    try:
        yield page
    finally:
        try:
            await page.close()
        except Exception:
            pass
        try:
            await context.close()
        except Exception:
            pass


def _as_lookup(item: SelectorLookup | str) -> SelectorLookup:
    if isinstance(item, SelectorLookup):
        return item
    return SelectorLookup(selector=str(item))


async def find_first(page: Page, lookups: Sequence[SelectorLookup | str]) -> tuple[str, Any] | None:
    """
    Evaluate alternative lookups in order and return (selector, element) for
    the first one that matches, or None when none do. A lookup with a timeout
    waits for its selector; a timeout simply moves on to the next alternative.
    """
    for raw in lookups:
        lookup = _as_lookup(raw)
        if lookup.timeout_ms is None:
            element = await page.query_selector(lookup.selector)
        else:
            try:
                element = await page.wait_for_selector(lookup.selector, state="attached", timeout=lookup.timeout_ms)
            except PlaywrightTimeoutError:
                element = None
        if element is not None:
            return lookup.selector, element
    return None


async def select_and_type(page: Page, selector: str, text: str) -> None:
    # Triple click selects any existing value so typing replaces it.
    await page.click(selector, click_count=3)
    await page.type(selector, text)


async def click_and_wait_for_navigation(
    page: Page,
    element: Any,
    *,
    wait_until: str = "networkidle",
    timeout_ms: int = 30_000,
    ignore_navigation_errors: bool = False,
) -> None:
    """
    Start the navigation wait and the click together and join both, so neither
    the click nor the redirect it triggers is missed.
    """

    async def _navigation() -> None:
        try:
            await page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame == page.main_frame,
                timeout=timeout_ms,
            )
            await page.wait_for_load_state(wait_until, timeout=timeout_ms)
        except PlaywrightError as e:
            if not ignore_navigation_errors:
                raise
            logger.warning("Navigation wait failed", error=str(e))

    tasks = [asyncio.ensure_future(_navigation()), asyncio.ensure_future(element.click())]
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
