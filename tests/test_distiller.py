"""Tests for the distill pipeline."""

import asyncio
from unittest.mock import MagicMock

import pytest
from pagedistill import (
    Capacity,
    ConversionFailed,
    DistillConfig,
    Distiller,
    DistillStage,
    ExtractionFailed,
    ExtractorChoice,
    NavigationFailed,
    ProviderUnavailable,
    SessionInfo,
    distill,
    distill_blocking,
)
from pagedistill.core import create_provider
from pagedistill.browser import LocalBrowserProvider, RemoteBrowserProvider
from pagedistill.extraction.scripts import DOMDISTILLER_ENTRY_JS, NAME_HELPER_JS, READABILITY_ENTRY_JS
from playwright.async_api import Error as PlaywrightError

from .conftest import ARTICLE_HTML, FakePage, FakeProvider

URL = "https://example.com/post"

DISTILLER_CONFIG = DistillConfig(extraction={"domdistiller_script": "vendor/domdistiller.js"})


class TestDistill:
    """Tests for the distill function."""

    @pytest.mark.asyncio
    async def test_returns_raw_fragment_without_markdown(self, provider):
        """Without markdown the extractor's fragment comes back untouched."""
        result = await distill(provider, URL)

        assert result == ARTICLE_HTML
        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_converts_to_markdown(self, provider):
        result = await distill(provider, URL, markdown=True)

        assert "# Title" in result
        assert "```python\nprint(1)\n```" in result
        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_page_setup(self, provider, readability_page):
        await distill(provider, URL, config=DistillConfig(browser={"navigation_timeout": 12}))

        assert provider.browsers[0].page_options == [{"bypass_csp": True}]
        assert readability_page.gotos == [(URL, {"wait_until": "networkidle", "timeout": 12000})]
        assert readability_page.evaluated[0] == NAME_HELPER_JS
        assert "console" in readability_page.handlers

    @pytest.mark.asyncio
    async def test_readability_choice(self, provider, readability_page):
        await distill(provider, URL, extractor=ExtractorChoice.READABILITY)

        assert READABILITY_ENTRY_JS in readability_page.evaluated
        assert DOMDISTILLER_ENTRY_JS not in readability_page.evaluated

    @pytest.mark.asyncio
    async def test_distiller_choice(self, distiller_page):
        provider = FakeProvider(page=distiller_page)

        result = await distill(provider, URL, extractor=ExtractorChoice.DOM_DISTILLER, config=DISTILLER_CONFIG)

        assert result == ARTICLE_HTML
        assert DOMDISTILLER_ENTRY_JS in distiller_page.evaluated
        assert READABILITY_ENTRY_JS not in distiller_page.evaluated

    @pytest.mark.asyncio
    async def test_reuses_idle_session(self, readability_page):
        provider = FakeProvider(sessions=[SessionInfo("s1")], page=readability_page)

        await distill(provider, URL)

        assert provider.connected == ["s1"]
        assert provider.launches == 0
        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_navigation_error_releases_browser(self):
        provider = FakeProvider(page=FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))

        with pytest.raises(NavigationFailed, match="ERR_NAME_NOT_RESOLVED"):
            await distill(provider, URL)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_http_error_status_is_navigation_failure(self):
        provider = FakeProvider(page=FakePage(status=404))

        with pytest.raises(NavigationFailed, match="HTTP 404"):
            await distill(provider, URL)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_missing_response_is_accepted(self):
        """Same-document navigations return no response."""
        page = FakePage(status=None, results={READABILITY_ENTRY_JS: {"content": "<p>x</p>"}})
        provider = FakeProvider(page=page)

        assert await distill(provider, URL) == "<p>x</p>"

    @pytest.mark.asyncio
    async def test_extraction_error_releases_browser(self):
        provider = FakeProvider(page=FakePage(results={READABILITY_ENTRY_JS: None}))

        with pytest.raises(ExtractionFailed):
            await distill(provider, URL)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_distiller_shape_error_releases_browser(self):
        page = FakePage(results={DOMDISTILLER_ENTRY_JS: [[], []]})
        provider = FakeProvider(page=page)

        with pytest.raises(ExtractionFailed):
            await distill(provider, URL, extractor=ExtractorChoice.DOM_DISTILLER, config=DISTILLER_CONFIG)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_conversion_error_releases_browser(self, provider):
        converter = MagicMock()
        converter.convert.side_effect = ConversionFailed("engine exploded")

        with pytest.raises(ConversionFailed):
            await distill(provider, URL, markdown=True, converter=converter)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_acquire_failure_has_nothing_to_release(self):
        provider = FakeProvider(launch_error=ProviderUnavailable("no browsers"))
        events = []

        with pytest.raises(ProviderUnavailable):
            await distill(provider, URL, emit=events.append)

        assert provider.browsers == []
        assert [e.stage for e in events] == [DistillStage.FAILED]

    @pytest.mark.asyncio
    async def test_cancellation_error_releases_browser(self):
        provider = FakeProvider(page=FakePage(goto_error=asyncio.CancelledError()))

        with pytest.raises(asyncio.CancelledError):
            await distill(provider, URL)

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_task_releases_browser(self, provider, readability_page):
        started = asyncio.Event()

        async def slow_goto(url, **kwargs):
            started.set()
            await asyncio.sleep(60)

        readability_page.goto = slow_goto
        task = asyncio.create_task(distill(provider, URL))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_error_does_not_mask_result(self, readability_page):
        provider = FakeProvider(page=readability_page)
        original_launch = provider.launch

        async def launch():
            browser = await original_launch()
            browser.close_error = RuntimeError("socket closed")
            return browser

        provider.launch = launch

        assert await distill(provider, URL) == ARTICLE_HTML
        assert provider.close_calls == 1

    @pytest.mark.asyncio
    async def test_emits_stages_in_order(self, provider):
        events = []

        await distill(provider, URL, markdown=True, emit=events.append)

        assert [e.stage for e in events] == [
            DistillStage.SESSION_ACQUIRED,
            DistillStage.PAGE_OPENED,
            DistillStage.NAVIGATED,
            DistillStage.EXTRACTED,
            DistillStage.CONVERTED,
            DistillStage.RELEASED,
        ]
        assert events[2].status_code == 200
        assert all(e.url == URL for e in events)

    @pytest.mark.asyncio
    async def test_failure_emits_failed_then_released(self):
        provider = FakeProvider(page=FakePage(status=500))
        events = []

        with pytest.raises(NavigationFailed):
            await distill(provider, URL, emit=events.append)

        stages = [e.stage for e in events]
        assert stages[-2:] == [DistillStage.FAILED, DistillStage.RELEASED]
        assert events[-2].is_error
        assert "HTTP 500" in events[-2].error


class TestDistiller:
    """Tests for the Distiller wrapper."""

    @pytest.mark.asyncio
    async def test_use_readability_flag(self, distiller_page):
        provider = FakeProvider(page=distiller_page)
        distiller = Distiller(provider, DISTILLER_CONFIG)

        result = await distiller.distill(URL, markdown=False, use_readability=False)

        assert result == ARTICLE_HTML
        assert DOMDISTILLER_ENTRY_JS in distiller_page.evaluated

    @pytest.mark.asyncio
    async def test_capacity(self):
        provider = FakeProvider(capacity=Capacity(allowed=0, retry_after=5))

        capacity = await Distiller(provider).capacity()

        assert capacity.available is False
        assert capacity.retry_after == 5
        assert provider.launches == 0


class TestCreateProvider:
    """Tests for provider selection."""

    def test_local(self):
        config = DistillConfig(browser={"provider": "local"})
        assert isinstance(create_provider(config.browser), LocalBrowserProvider)

    def test_remote(self):
        config = DistillConfig(browser={"endpoint": "https://browser.example.com"})
        assert isinstance(create_provider(config.browser), RemoteBrowserProvider)

    def test_remote_requires_endpoint(self):
        with pytest.raises(ValueError, match="endpoint"):
            create_provider(DistillConfig().browser)


class TestDistillBlocking:
    """Tests for distill_blocking."""

    @pytest.mark.asyncio
    async def test_refuses_running_loop(self):
        with pytest.raises(RuntimeError, match="async context"):
            distill_blocking(URL)
