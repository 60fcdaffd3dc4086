"""Locally launched Chromium provider for development and the CLI."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..errors import ProviderUnavailable
from ..models.config import BrowserConfig
from .protocols import BrowserHandle, Capacity, SessionInfo

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright

logger = logging.getLogger(__name__)


class LocalBrowser:
    """Handle around a local browser that reports back when it closes."""

    def __init__(self, provider: LocalBrowserProvider, browser: Browser) -> None:
        self._provider = provider
        self._browser = browser
        self._closed = False

    async def new_page(self, **kwargs: Any) -> Page:
        return await self._browser.new_page(**kwargs)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._provider._open -= 1
        await self._browser.close()


class LocalBrowserProvider:
    """
    Browser provider that launches Chromium on this machine.

    There is no pool of reusable sessions: every request launches its own
    browser, and capacity is the configured maximum minus open browsers.

    Example:
        async with LocalBrowserProvider(BrowserConfig(provider="local")) as provider:
            html = await distill(provider, "https://example.com")

    Requires: playwright install chromium
    """

    def __init__(self, config: BrowserConfig) -> None:
        """
        Initialize the provider.

        Args:
            config: Browser configuration (headless, max_browsers)
        """
        self._headless = config.headless
        self._max_browsers = config.max_browsers
        self._playwright: Playwright | None = None
        self._open = 0

    async def __aenter__(self) -> LocalBrowserProvider:
        """Start Playwright."""
        self._playwright = await async_playwright().start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop Playwright."""
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def list_sessions(self) -> list[SessionInfo]:
        return []

    async def connect(self, session_id: str) -> BrowserHandle:
        raise ProviderUnavailable(f"Local provider cannot attach to session {session_id}")

    async def launch(self) -> BrowserHandle:
        if self._playwright is None:
            raise RuntimeError("Provider not initialized. Use 'async with' context.")

        try:
            browser = await self._playwright.chromium.launch(headless=self._headless)
        except PlaywrightError as e:
            raise ProviderUnavailable(f"Could not launch Chromium: {e}") from e

        self._open += 1
        logger.debug(f"Launched local browser ({self._open}/{self._max_browsers} open)")
        return LocalBrowser(self, browser)

    async def query_capacity(self) -> Capacity:
        return Capacity(allowed=max(self._max_browsers - self._open, 0))
