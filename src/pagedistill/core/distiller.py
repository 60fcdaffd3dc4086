"""The distill pipeline: acquire, navigate, extract, convert, release."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

from playwright.async_api import Error as PlaywrightError

from ..browser import (
    BrowserHandle,
    BrowserProvider,
    Capacity,
    LocalBrowserProvider,
    Page,
    RemoteBrowserProvider,
    acquire_browser,
    check_capacity,
)
from ..conversion import HtmlToMarkdown
from ..errors import ExtractionFailed, NavigationFailed, ProviderUnavailable
from ..extraction import NAME_HELPER_JS, extract
from ..logging_config import PAGE_LOGGER_NAME
from ..models.config import BrowserConfig, DistillConfig, ExtractorChoice
from ..models.events import DistillEvent, DistillStage, EventEmitter

logger = logging.getLogger(__name__)
page_logger = logging.getLogger(PAGE_LOGGER_NAME)

# Playwright's networkidle: no network connections for at least 500 ms
WAIT_UNTIL = "networkidle"

AnyProvider = Union[RemoteBrowserProvider, LocalBrowserProvider]


def create_provider(config: BrowserConfig) -> AnyProvider:
    """Build the provider selected in the browser configuration."""
    if config.provider == "local":
        return LocalBrowserProvider(config)
    return RemoteBrowserProvider(config)


def _emit(emit: Optional[EventEmitter], stage: DistillStage, url: str, **fields: Any) -> None:
    if emit:
        emit(DistillEvent(stage=stage, url=url, **fields))


async def _open_page(browser: BrowserHandle) -> Page:
    try:
        page = await browser.new_page(bypass_csp=True)
    except PlaywrightError as e:
        raise ProviderUnavailable(f"Could not open a page: {e}") from e

    page.on("console", lambda msg: page_logger.debug(f"PAGE LOG: {msg.text}"))
    return page


async def _navigate(page: Page, url: str, timeout: float) -> Optional[int]:
    try:
        response = await page.goto(url, wait_until=WAIT_UNTIL, timeout=timeout * 1000)
    except PlaywrightError as e:
        raise NavigationFailed(url, str(e)) from e

    status = response.status if response is not None else None
    if status is not None and status >= 400:
        raise NavigationFailed(url, f"HTTP {status}")
    return status


async def _prepare_page(page: Page) -> None:
    try:
        await page.evaluate(NAME_HELPER_JS)
    except PlaywrightError as e:
        raise ExtractionFailed(f"Could not prepare page for extraction: {e}") from e


async def _release(browser: BrowserHandle) -> None:
    """Close the browser, also when the surrounding task is being cancelled."""
    try:
        await asyncio.shield(browser.close())
    except Exception as e:
        logger.warning(f"Error closing browser: {e}")


async def distill(
    provider: BrowserProvider,
    url: str,
    markdown: bool = False,
    extractor: ExtractorChoice = ExtractorChoice.READABILITY,
    *,
    config: Optional[DistillConfig] = None,
    converter: Optional[HtmlToMarkdown] = None,
    emit: Optional[EventEmitter] = None,
) -> str:
    """
    Render a URL and return its main content as HTML or Markdown.

    The steps run strictly in order and none is retried. Whatever
    happens after a browser is acquired, including cancellation, the
    browser is closed exactly once.

    Args:
        provider: Browser-rendering provider
        url: Page to distill
        markdown: Convert the extracted HTML to Markdown
        extractor: Extraction strategy to run in the page
        config: Configuration (defaults apply when omitted)
        converter: Markdown converter (default settings when omitted)
        emit: Optional callback receiving stage events

    Returns:
        Extracted HTML fragment, or Markdown when ``markdown`` is set

    Raises:
        ProviderUnavailable, NavigationFailed, ExtractionFailed, ConversionFailed
    """
    config = config or DistillConfig()

    try:
        browser = await acquire_browser(provider)
    except Exception as e:
        _emit(emit, DistillStage.FAILED, url, error=str(e))
        raise
    _emit(emit, DistillStage.SESSION_ACQUIRED, url)

    try:
        page = await _open_page(browser)
        _emit(emit, DistillStage.PAGE_OPENED, url)

        status = await _navigate(page, url, config.browser.navigation_timeout)
        _emit(emit, DistillStage.NAVIGATED, url, status_code=status)

        await _prepare_page(page)
        content = await extract(page, extractor, config.extraction)
        _emit(emit, DistillStage.EXTRACTED, url, content_length=len(content))
        logger.debug(f"Extracted {len(content)} characters from {url} with {extractor.value}")

        if markdown:
            content = (converter or HtmlToMarkdown()).convert(content, url)
            _emit(emit, DistillStage.CONVERTED, url, content_length=len(content))

        return content

    except Exception as e:
        logger.error(f"Distill failed for {url}: {e}")
        _emit(emit, DistillStage.FAILED, url, error=str(e))
        raise

    finally:
        await _release(browser)
        _emit(emit, DistillStage.RELEASED, url)


class Distiller:
    """
    Request-level entry point bound to one provider.

    Example:
        async with RemoteBrowserProvider(config.browser) as provider:
            distiller = Distiller(provider, config)
            capacity = await distiller.capacity()
            if capacity.available:
                text = await distiller.distill("https://example.com/post", markdown=True)
    """

    def __init__(self, provider: BrowserProvider, config: Optional[DistillConfig] = None) -> None:
        self.provider = provider
        self.config = config or DistillConfig()
        self._converter = HtmlToMarkdown()

    async def capacity(self) -> Capacity:
        """Pre-flight capacity query; the pipeline itself never checks it."""
        return await check_capacity(self.provider)

    async def distill(
        self,
        url: str,
        markdown: bool = False,
        use_readability: bool = True,
        emit: Optional[EventEmitter] = None,
    ) -> str:
        return await distill(
            self.provider,
            url,
            markdown,
            ExtractorChoice.from_flag(use_readability),
            config=self.config,
            converter=self._converter,
            emit=emit,
        )


def distill_blocking(
    url: str,
    markdown: bool = False,
    use_readability: bool = True,
    config: Optional[DistillConfig] = None,
) -> str:
    """
    Blocking distill for sync code.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use the async ``distill`` API instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError("distill_blocking() called from async context. Use 'await distill()' instead.")

    config = config or DistillConfig()

    async def _run() -> str:
        async with create_provider(config.browser) as provider:
            return await Distiller(provider, config).distill(url, markdown, use_readability)

    return asyncio.run(_run())
