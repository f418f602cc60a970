"""Page operations run against a session's current page.

Every operation looks the session up (resetting its idle clock), gets or
opens the current page, and calls one Playwright primitive. Playwright
failures, timeouts included, come back as ``OperationFailed`` and leave the
session and its ``current_url`` untouched.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..config import (
    CONTENT_MAX_CHARS,
    NAVIGATION_TIMEOUT_MS,
    SCREENSHOT_MAX_HEIGHT,
    SCREENSHOT_MAX_WIDTH,
    SCREENSHOT_QUALITY,
    SELECTOR_TIMEOUT_MS,
)
from ..constants import DEFAULT_VIEWPORT, DEFAULT_WAIT_UNTIL, EVALUATE_WRAPPER, WAIT_UNTIL_ALIASES
from ..models.session import (
    ClickResult,
    ContentResult,
    EvaluateResult,
    NavigateResult,
    PdfResult,
    ScreenshotResult,
)
from .errors import InvalidRequest, OperationFailed
from .imaging import shrink_screenshot
from .registry import SessionRecord, SessionRegistry

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def resolve_wait_until(value: Optional[str]) -> str:
    """Map a Playwright or Puppeteer wait mode to the Playwright name."""
    if not value:
        return DEFAULT_WAIT_UNTIL
    try:
        return WAIT_UNTIL_ALIASES[value]
    except KeyError:
        allowed = ", ".join(sorted(WAIT_UNTIL_ALIASES))
        raise InvalidRequest(f"Unsupported waitUntil '{value}'. Use one of: {allowed}") from None


class PageOperations:
    """Navigate, click, evaluate, screenshot, read content, and print to PDF."""

    def __init__(
        self,
        registry: SessionRegistry,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        selector_timeout_ms: int = SELECTOR_TIMEOUT_MS,
        content_max_chars: int = CONTENT_MAX_CHARS,
        screenshot_max_size: tuple[int, int] = (SCREENSHOT_MAX_WIDTH, SCREENSHOT_MAX_HEIGHT),
        screenshot_quality: int = SCREENSHOT_QUALITY,
    ):
        self._registry = registry
        self._navigation_timeout = navigation_timeout_ms
        self._selector_timeout = selector_timeout_ms
        self._content_max_chars = content_max_chars
        self._screenshot_max_size = screenshot_max_size
        self._screenshot_quality = screenshot_quality

    @asynccontextmanager
    async def _page(self, session_id: str, action: str) -> AsyncIterator[tuple[SessionRecord, Page]]:
        async with self._registry.lease(session_id) as record:
            try:
                page = await self._registry.current_page(record)
                yield record, page
            except PlaywrightError as e:
                logger.warning(f"[PAGE] {action} failed in {session_id}: {e}")
                raise OperationFailed(f"{action} failed: {e}") from e

    async def navigate(self, session_id: str, url: str, wait_until: Optional[str] = None) -> NavigateResult:
        wait = resolve_wait_until(wait_until)
        async with self._page(session_id, "Navigation") as (record, page):
            logger.info(f"[PAGE] {session_id} navigating to {url} (waitUntil={wait})")
            # A previous screenshot may have resized the viewport.
            await page.set_viewport_size(DEFAULT_VIEWPORT)
            await page.goto(url, wait_until=wait, timeout=self._navigation_timeout)
            title = await page.title()
            final_url = page.url
            record.current_url = final_url
        return NavigateResult(title=title, url=final_url)

    async def click(self, session_id: str, selector: str, wait_for_navigation: bool = False) -> ClickResult:
        async with self._page(session_id, "Click") as (record, page):
            if wait_for_navigation:
                async with page.expect_navigation(
                    wait_until=DEFAULT_WAIT_UNTIL, timeout=self._navigation_timeout
                ):
                    await page.click(selector, timeout=self._selector_timeout)
            else:
                await page.click(selector, timeout=self._selector_timeout)
            title = await page.title()
            new_url = page.url
            record.current_url = new_url
        return ClickResult(new_url=new_url, title=title)

    async def evaluate(self, session_id: str, script: str) -> EvaluateResult:
        """Run ``script`` as a function body in the page and return its result."""
        async with self._page(session_id, "Evaluation") as (_, page):
            result = await page.evaluate(EVALUATE_WRAPPER, script)
        return EvaluateResult(result=result)

    async def screenshot(
        self,
        session_id: str,
        width: int = 800,
        height: int = 600,
        delay: int = 0,
        wait_for_selector: Optional[str] = None,
    ) -> ScreenshotResult:
        """Capture the viewport and return it as a size-bounded JPEG.

        Args:
            width: Viewport width in pixels.
            height: Viewport height in pixels.
            delay: Extra milliseconds to wait before capturing (animations).
            wait_for_selector: CSS selector that must appear before capturing.
        """
        async with self._page(session_id, "Screenshot") as (_, page):
            await page.set_viewport_size({"width": width, "height": height})
            if wait_for_selector:
                await page.wait_for_selector(wait_for_selector, timeout=self._selector_timeout)
            if delay > 0:
                await asyncio.sleep(delay / 1000)
            png = await page.screenshot(type="png", full_page=False)
            title = await page.title()
            url = page.url

        max_width, max_height = self._screenshot_max_size
        try:
            jpeg = shrink_screenshot(png, max_width, max_height, self._screenshot_quality)
        except OSError as e:
            raise OperationFailed(f"Screenshot encoding failed: {e}") from e

        return ScreenshotResult(
            screenshot_base64=base64.b64encode(jpeg).decode("ascii"),
            url=url,
            title=title,
        )

    async def read_content(self, session_id: str) -> ContentResult:
        async with self._page(session_id, "Content read") as (_, page):
            content = await page.content()
            title = await page.title()
            url = page.url
        return ContentResult(
            title=title,
            url=url,
            content=content[: self._content_max_chars],
            content_length=len(content),
        )

    async def pdf(self, session_id: str, format: str = "A4", print_background: bool = True) -> PdfResult:
        """Print the current page to PDF. Only works with headless Chromium."""
        async with self._page(session_id, "PDF") as (_, page):
            data = await page.pdf(format=format, print_background=print_background)
            title = await page.title()
            url = page.url
        return PdfResult(
            pdf_base64=base64.b64encode(data).decode("ascii"),
            url=url,
            title=title,
        )
