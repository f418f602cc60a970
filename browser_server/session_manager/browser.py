"""Playwright Chromium launcher: one browser process per session."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from playwright.async_api import Browser, Playwright, async_playwright

from ..config import BROWSER_EXECUTABLE_PATH, BROWSER_HEADLESS
from ..constants import CHROMIUM_ARGS

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class BrowserLauncher:
    """Owns the Playwright driver and launches isolated Chromium instances.

    The driver is shared; every ``launch()`` call starts a separate browser
    process that the caller owns and must close.
    """

    def __init__(
        self,
        headless: bool = BROWSER_HEADLESS,
        executable_path: Optional[str] = BROWSER_EXECUTABLE_PATH,
    ):
        self._headless = headless
        self._executable_path = executable_path
        self._playwright: Optional[Playwright] = None

    @property
    def is_running(self) -> bool:
        return self._playwright is not None

    async def start(self):
        """Start the Playwright driver if it isn't running yet."""
        if self._playwright is None:
            logger.info(f"Starting Playwright driver (headless={self._headless})...")
            self._playwright = await async_playwright().start()

    async def launch(self) -> Browser:
        """Launch a new Chromium process."""
        await self.start()
        return await self._playwright.chromium.launch(
            headless=self._headless,
            executable_path=self._executable_path,
            args=CHROMIUM_ARGS,
        )

    async def stop(self):
        """Stop the Playwright driver. Failures are logged, not retried."""
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.warning(f"Error stopping Playwright driver: {e}")
        finally:
            self._playwright = None
        logger.info("Playwright driver stopped.")
