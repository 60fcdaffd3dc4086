"""
pagedistill - Extract the readable content of a web page as HTML or Markdown.

Usage:
    from pagedistill import DistillConfig, Distiller, RemoteBrowserProvider

    config = DistillConfig(browser={"endpoint": "https://browser.example.com"})

    async with RemoteBrowserProvider(config.browser) as provider:
        distiller = Distiller(provider, config)
        markdown = await distiller.distill("https://example.com/post", markdown=True)
"""

__version__ = "1.0.0"

from .browser import (
    BrowserProvider,
    Capacity,
    LocalBrowserProvider,
    RemoteBrowserProvider,
    SessionInfo,
    acquire_browser,
    check_capacity,
    ensure_capacity,
)
from .conversion import HtmlToMarkdown, to_markdown
from .core import Distiller, create_provider, distill, distill_blocking
from .errors import (
    CapacityExceeded,
    ConversionFailed,
    DistillError,
    ExtractionFailed,
    NavigationFailed,
    ProviderUnavailable,
)
from .extraction import extract
from .models import (
    BrowserConfig,
    DistillConfig,
    DistillEvent,
    DistillStage,
    ExtractionConfig,
    ExtractorChoice,
    ServerConfig,
)

__all__ = [
    "__version__",
    # Core
    "Distiller",
    "distill",
    "distill_blocking",
    "create_provider",
    # Browser
    "BrowserProvider",
    "Capacity",
    "LocalBrowserProvider",
    "RemoteBrowserProvider",
    "SessionInfo",
    "acquire_browser",
    "check_capacity",
    "ensure_capacity",
    # Extraction and conversion
    "extract",
    "HtmlToMarkdown",
    "to_markdown",
    # Config
    "BrowserConfig",
    "DistillConfig",
    "ExtractionConfig",
    "ExtractorChoice",
    "ServerConfig",
    # Events
    "DistillEvent",
    "DistillStage",
    # Errors
    "DistillError",
    "CapacityExceeded",
    "ConversionFailed",
    "ExtractionFailed",
    "NavigationFailed",
    "ProviderUnavailable",
]
