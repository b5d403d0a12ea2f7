from __future__ import annotations

import asyncio
from typing import Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self.page = page
        self.selector = selector

    async def click(self, **kwargs: Any) -> None:
        self.page._clicked(self.selector)

    async def type(self, text: str, **kwargs: Any) -> None:
        self.page._typed(self.selector, text)


class FakePage:
    """
    In-process stand-in for a Playwright page. Selectors match by exact string.

    - present: selectors that exist on every page
    - counts: selector -> number of elements for query_selector_all
    - navigations: clicked selector -> url the page navigates to
    - failing: selectors whose typing raises
    """

    def __init__(
        self,
        *,
        present: set[str] | None = None,
        counts: dict[str, int] | None = None,
        navigations: dict[str, str] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.url = "about:blank"
        self.main_frame = object()
        self.present = set(present or ())
        self.counts = dict(counts or {})
        self.navigations = dict(navigations or {})
        self.failing = set(failing or ())
        self.calls: list[tuple[Any, ...]] = []
        self.screenshots: list[str] = []
        self._click_done = asyncio.Event()
        self._last_click_navigated = False

    def _clicked(self, selector: str) -> None:
        self.calls.append(("click", selector))
        new_url = self.navigations.get(selector)
        self._last_click_navigated = new_url is not None
        if new_url is not None:
            self.url = new_url
        self._click_done.set()

    def _typed(self, selector: str, text: str) -> None:
        if selector in self.failing:
            raise RuntimeError(f"element is not editable: {selector}")
        self.calls.append(("type", selector, text))

    def typed(self) -> list[tuple[str, str]]:
        return [(c[1], c[2]) for c in self.calls if c[0] == "type"]

    def clicked(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "click"]

    async def set_viewport_size(self, size: dict[str, int]) -> None:
        self.calls.append(("viewport", size["width"], size["height"]))

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.calls.append(("goto", url))
        self.url = url

    async def wait_for_selector(self, selector: str, timeout: float | None = None, **kwargs: Any) -> FakeElement:
        self.calls.append(("wait", selector, kwargs.get("state")))
        if selector in self.present:
            return FakeElement(self, selector)
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def query_selector(self, selector: str) -> FakeElement | None:
        if selector in self.present:
            return FakeElement(self, selector)
        return None

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        return [FakeElement(self, selector) for _ in range(self.counts.get(selector, 0))]

    async def click(self, selector: str, **kwargs: Any) -> None:
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout exceeded waiting for {selector}")
        self._clicked(selector)

    async def type(self, selector: str, text: str, **kwargs: Any) -> None:
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout exceeded waiting for {selector}")
        self._typed(selector, text)

    async def wait_for_event(self, event: str, predicate: Any = None, timeout: float | None = None) -> Any:
        # Started before the click it is joined with.
        self._click_done.clear()
        await self._click_done.wait()
        if not self._last_click_navigated:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded while waiting for event \"{event}\"")
        if predicate is not None:
            assert predicate(self.main_frame)
        return self.main_frame

    async def wait_for_load_state(self, state: str | None = None, timeout: float | None = None) -> None:
        self.calls.append(("load_state", state))

    async def wait_for_timeout(self, timeout: float) -> None:
        self.calls.append(("settle", timeout))

    async def screenshot(self, path: str | None = None, **kwargs: Any) -> bytes:
        self.screenshots.append(str(path))
        return b""
