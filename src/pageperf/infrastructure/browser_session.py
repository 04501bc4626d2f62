"""
Browser session management for profiling runs.

Launches a Chromium browser through Playwright and hands out isolated
browser contexts, one per page load. Profiling relies on the Chrome
DevTools Protocol, so only Chromium is supported.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from pageperf.config import settings
from pageperf.exceptions import BrowserNotStartedError

logger = logging.getLogger(__name__)


class BrowserSession:
    """
    Playwright Chromium session.

    Designed to be used as an async context manager:

        async with BrowserSession() as session:
            async with session.context() as context:
                result = await load_page(context, config, page_config)
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        channel: Optional[str] = None,
        launch_args: Optional[List[str]] = None,
    ):
        """
        Initialize the session.

        Args:
            headless: Run without a visible window (defaults to settings)
            channel: Browser channel such as 'chrome' (defaults to settings)
            launch_args: Additional browser launch arguments
        """
        self.headless = settings.HEADLESS if headless is None else headless
        self.channel = channel if channel is not None else settings.BROWSER_CHANNEL
        self.launch_args = launch_args or []
        self._playwright = None
        self._browser = None

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def __aenter__(self) -> "BrowserSession":
        """Enter async context manager, launching browser."""
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "Playwright is required for profiling. "
                "Install with: pip install playwright && playwright install chromium"
            )

        logger.info(f"Launching chromium browser (headless={self.headless})")

        self._playwright = await async_playwright().start()

        launch_options = {"headless": self.headless}
        if self.channel:
            launch_options["channel"] = self.channel
        if self.launch_args:
            launch_options["args"] = self.launch_args

        self._browser = await self._playwright.chromium.launch(**launch_options)

        logger.info("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._browser:
            logger.info("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def context(self, **options) -> AsyncIterator:
        """
        Yield a fresh, isolated browser context.

        Args:
            **options: Passed to Browser.new_context (viewport, user_agent,
                is_mobile, has_touch, device_scale_factor, ...)
        """
        if not self._browser:
            raise BrowserNotStartedError(
                "Browser is not running. Use BrowserSession as an async context manager: "
                "async with BrowserSession() as session:"
            )

        context = await self._browser.new_context(**options)
        try:
            yield context
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"Error closing browser context: {e}")
