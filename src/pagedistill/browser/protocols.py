"""Protocol definitions for the browser-rendering provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol


@dataclass(frozen=True)
class SessionInfo:
    """
    A browser session known to the provider.

    Attributes:
        session_id: Opaque session identifier
        connection_id: Id of the worker currently attached, or None when idle
    """

    session_id: str
    connection_id: Optional[str] = None

    @property
    def is_idle(self) -> bool:
        return not self.connection_id


@dataclass(frozen=True)
class Capacity:
    """
    Browser acquisitions the provider currently allows.

    Attributes:
        allowed: Number of browsers that may be acquired right now
        retry_after: Seconds until the next acquisition is allowed
    """

    allowed: int
    retry_after: float = 0.0

    @property
    def available(self) -> bool:
        return self.allowed >= 1


class Page(Protocol):
    """The subset of a Playwright page the pipeline drives."""

    async def goto(self, url: str, *, wait_until: str, timeout: float) -> Any:
        ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        ...

    async def add_script_tag(
        self,
        *,
        url: Optional[str] = None,
        path: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Any:
        ...

    def on(self, event: str, f: Callable[..., Any]) -> None:
        ...


class BrowserHandle(Protocol):
    """
    A live connection to one browser session.

    Owned by a single request and closed exactly once when it ends.
    """

    async def new_page(self, **kwargs: Any) -> Page:
        ...

    async def close(self) -> None:
        ...


class BrowserProvider(Protocol):
    """
    Protocol for browser-rendering providers.

    This abstraction allows for:
    - A remote managed browser service with reusable sessions
    - A locally launched Chromium for development
    - Fake providers returning canned results in tests
    """

    async def list_sessions(self) -> list[SessionInfo]:
        """
        List active sessions.

        Raises:
            ProviderUnavailable if the provider cannot be reached
        """
        ...

    async def connect(self, session_id: str) -> BrowserHandle:
        """
        Attach to an existing session.

        Raises:
            Exception if the session was claimed by someone else or is gone
        """
        ...

    async def launch(self) -> BrowserHandle:
        """
        Start a brand-new session.

        Raises:
            ProviderUnavailable if no browser could be started
        """
        ...

    async def query_capacity(self) -> Capacity:
        """Report how many acquisitions are currently allowed."""
        ...
