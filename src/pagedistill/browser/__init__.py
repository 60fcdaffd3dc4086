"""Browser-rendering providers and session acquisition."""

from .local import LocalBrowserProvider
from .protocols import BrowserHandle, BrowserProvider, Capacity, Page, SessionInfo
from .remote import RemoteBrowserProvider, parse_limits, parse_sessions
from .sessions import acquire_browser, check_capacity, ensure_capacity, pick_idle_session

__all__ = [
    # Protocols
    "BrowserHandle",
    "BrowserProvider",
    "Capacity",
    "Page",
    "SessionInfo",
    # Implementations
    "LocalBrowserProvider",
    "RemoteBrowserProvider",
    "parse_limits",
    "parse_sessions",
    # Acquisition
    "acquire_browser",
    "check_capacity",
    "ensure_capacity",
    "pick_idle_session",
]
