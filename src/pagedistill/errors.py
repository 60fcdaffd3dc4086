"""Error types raised by the distill pipeline."""

from __future__ import annotations


class DistillError(Exception):
    """Base class for every fatal pipeline error."""


class ProviderUnavailable(DistillError):
    """No browser session could be connected or launched."""


class NavigationFailed(DistillError):
    """The page did not load within the network-idle wait."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Navigation to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class ExtractionFailed(DistillError):
    """An extraction script threw or returned an unexpected shape."""


class ConversionFailed(DistillError):
    """The Markdown engine could not convert the extracted fragment."""


class CapacityExceeded(DistillError):
    """
    The browser provider reports no acquisitions available.

    Raised by the pre-flight capacity check, never by the pipeline itself.

    Attributes:
        retry_after: Seconds the caller should wait before trying again
    """

    def __init__(self, retry_after: float = 0.0) -> None:
        super().__init__("The browser worker is busy")
        self.retry_after = retry_after
