"""Remote managed browser service provider."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Optional

import aiohttp
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from ..errors import ProviderUnavailable
from ..models.config import BrowserConfig
from .protocols import BrowserHandle, Capacity, SessionInfo

if TYPE_CHECKING:
    from playwright.async_api import Playwright

logger = logging.getLogger(__name__)


def parse_sessions(payload: Any) -> list[SessionInfo]:
    """
    Parse the sessions listing of the browser service.

    Accepts either ``{"sessions": [...]}`` or a bare list of entries
    with ``sessionId`` and ``connectionId`` keys.
    """
    entries = payload.get("sessions", []) if isinstance(payload, dict) else payload
    if not isinstance(entries, list):
        raise ProviderUnavailable(f"Unexpected sessions payload: {payload!r}")

    sessions = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("sessionId"):
            continue
        sessions.append(
            SessionInfo(
                session_id=str(entry["sessionId"]),
                connection_id=entry.get("connectionId") or None,
            )
        )
    return sessions


def parse_limits(payload: Any) -> Capacity:
    """Parse the limits payload; the service reports the wait in milliseconds."""
    if not isinstance(payload, dict):
        raise ProviderUnavailable(f"Unexpected limits payload: {payload!r}")
    try:
        allowed = int(payload.get("allowedBrowserAcquisitions", 0))
        wait_ms = float(payload.get("timeUntilNextAllowedBrowserAcquisition", 0) or 0)
    except (TypeError, ValueError) as e:
        raise ProviderUnavailable(f"Unexpected limits payload: {payload!r}") from e
    return Capacity(allowed=allowed, retry_after=wait_ms / 1000)


class RemoteBrowserProvider:
    """
    Browser provider backed by a remote browser-rendering service.

    The control plane (sessions, limits, acquire) is plain HTTP; pages are
    driven over the devtools websocket with Playwright's CDP connection.

    Example:
        config = BrowserConfig(endpoint="https://browser.example.com", api_token="...")
        async with RemoteBrowserProvider(config) as provider:
            text = await distill(provider, "https://example.com/post", markdown=True)
    """

    def __init__(self, config: BrowserConfig) -> None:
        """
        Initialize the provider.

        Args:
            config: Browser configuration with the service endpoint and token
        """
        if not config.endpoint:
            raise ValueError("Remote browser provider requires an endpoint")

        self._config = config
        self._endpoint = config.endpoint.rstrip("/")
        self._devtools_base = config.devtools_base()
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

        self._session: aiohttp.ClientSession | None = None
        self._playwright: Playwright | None = None

    async def __aenter__(self) -> RemoteBrowserProvider:
        """Start Playwright and the control-plane HTTP session."""
        headers = {}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"
        self._session = aiohttp.ClientSession(headers=headers, timeout=self._timeout)
        self._playwright = await async_playwright().start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the HTTP session and stop Playwright."""
        if self._session:
            await self._session.close()
            self._session = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def _request(self, method: str, path: str) -> Any:
        if self._session is None:
            raise RuntimeError("Provider not initialized. Use 'async with' context.")

        url = f"{self._endpoint}{path}"
        try:
            async with self._session.request(method, url) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ProviderUnavailable(f"{method} {path} returned {response.status}: {body[:200]}")
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderUnavailable(f"{method} {path} failed: {e}") from e

    async def list_sessions(self) -> list[SessionInfo]:
        payload = await self._request("GET", "/v1/sessions")
        return parse_sessions(payload)

    async def query_capacity(self) -> Capacity:
        payload = await self._request("GET", "/v1/limits")
        return parse_limits(payload)

    def devtools_url(self, session_id: str) -> str:
        return f"{self._devtools_base}/v1/connectDevtools?browser_session={session_id}"

    async def connect(self, session_id: str) -> BrowserHandle:
        if self._playwright is None:
            raise RuntimeError("Provider not initialized. Use 'async with' context.")

        headers = {}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"

        browser = await self._playwright.chromium.connect_over_cdp(
            self.devtools_url(session_id),
            timeout=self._config.request_timeout * 1000,
            headers=headers,
        )
        return browser  # type: ignore[return-value]

    async def launch(self) -> BrowserHandle:
        payload = await self._request("POST", "/v1/acquire")
        session_id = payload.get("sessionId") if isinstance(payload, dict) else None
        if not session_id:
            raise ProviderUnavailable(f"Browser service did not return a session: {payload!r}")

        logger.info(f"Launched browser session {session_id}")
        try:
            return await self.connect(str(session_id))
        except PlaywrightError as e:
            raise ProviderUnavailable(f"Could not attach to new session {session_id}: {e}") from e
