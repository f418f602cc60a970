"""
Shared pytest fixtures for browser-server tests.

Provides in-memory stand-ins for Playwright objects so the registry, sweep,
and page operations can be exercised without launching Chromium:
- FakePage / FakeBrowser / FakeLauncher: record calls, fail on demand
- FakeClock: manually advanced monotonic clock
"""

import asyncio
from contextlib import asynccontextmanager
from io import BytesIO
from typing import Awaitable, Callable, Dict, List, Optional

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError

from browser_server.session_manager.admission import AdmissionController
from browser_server.session_manager.operations import PageOperations
from browser_server.session_manager.registry import SessionRegistry


def make_png(width: int, height: int, color=(200, 30, 30, 255)) -> bytes:
    """Build a solid-colour RGBA PNG."""
    buffer = BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


# =============================================================================
# Playwright fakes
# =============================================================================


class FakePage:
    """Mimics the subset of playwright.async_api.Page used by PageOperations."""

    def __init__(self, browser: "FakeBrowser", fail_on: Optional[Dict[str, Exception]] = None):
        self.browser = browser
        self.url = "about:blank"
        self.html = "<html><head><title></title></head><body></body></html>"
        self.viewport: Optional[dict] = None
        self.closed = False
        self.close_error: Optional[Exception] = None
        self.fail_on: Dict[str, Exception] = dict(fail_on or {})
        self.links: Dict[str, str] = {}  # selector -> URL the click navigates to
        self.screenshot_bytes = make_png(1600, 1200)
        self.evaluate_result = None
        self.on_goto: Optional[Callable[[], Awaitable[None]]] = None
        self.calls: List[tuple] = []
        self._title = ""

    def _check(self, name: str):
        if self.closed or self.browser.closed:
            raise PlaywrightError("Target page, context or browser has been closed")
        if name in self.fail_on:
            raise self.fail_on[name]

    async def goto(self, url, wait_until=None, timeout=None):
        self._check("goto")
        self.calls.append(("goto", url, wait_until, timeout))
        self.url = url
        self._title = f"Title of {url}"
        if self.on_goto is not None:
            await self.on_goto()

    async def title(self):
        self._check("title")
        return self._title

    async def click(self, selector, timeout=None):
        self._check("click")
        self.calls.append(("click", selector, timeout))
        if selector in self.links:
            self.url = self.links[selector]
            self._title = f"Title of {self.url}"

    @asynccontextmanager
    async def expect_navigation(self, wait_until=None, timeout=None):
        self._check("expect_navigation")
        self.calls.append(("expect_navigation", wait_until, timeout))
        yield

    async def evaluate(self, expression, arg=None):
        self._check("evaluate")
        self.calls.append(("evaluate", expression, arg))
        return self.evaluate_result

    async def set_viewport_size(self, size):
        self._check("set_viewport_size")
        self.viewport = size

    async def wait_for_selector(self, selector, timeout=None):
        self._check("wait_for_selector")
        self.calls.append(("wait_for_selector", selector, timeout))

    async def screenshot(self, type="png", full_page=False):
        self._check("screenshot")
        return self.screenshot_bytes

    async def content(self):
        self._check("content")
        return self.html

    async def pdf(self, format=None, print_background=None):
        self._check("pdf")
        return b"%PDF-1.4 fake"

    async def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


class FakeBrowser:
    """Mimics playwright.async_api.Browser: opens FakePages, closes once."""

    def __init__(self, page_fail_on: Optional[Dict[str, Exception]] = None):
        self.pages: List[FakePage] = []
        self.closed = False
        self.close_calls = 0
        self.close_error: Optional[Exception] = None
        self._page_fail_on = page_fail_on

    async def new_page(self, viewport=None):
        if self.closed:
            raise PlaywrightError("Browser has been closed")
        page = FakePage(self, self._page_fail_on)
        page.viewport = viewport
        self.pages.append(page)
        return page

    async def close(self):
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


class FakeLauncher:
    """Stands in for BrowserLauncher."""

    def __init__(self):
        self.browsers: List[FakeBrowser] = []
        self.fail_with: Optional[Exception] = None
        self.page_fail_on: Dict[str, Exception] = {}
        self.gate: Optional[asyncio.Event] = None
        self.stopped = False

    async def launch(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        browser = FakeBrowser(self.page_fail_on)
        self.browsers.append(browser)
        return browser

    async def stop(self):
        self.stopped = True


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def registry(launcher, clock):
    """Registry with room for three sessions and a 300s idle timeout."""
    return SessionRegistry(launcher, max_sessions=3, session_timeout=300, clock=clock)


@pytest.fixture
def admission(registry):
    return AdmissionController(registry)


@pytest.fixture
def operations(registry):
    return PageOperations(registry, content_max_chars=100)
