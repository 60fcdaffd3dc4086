"""pagedistill configuration and event models."""

from .config import (
    READABILITY_CDN_URL,
    BrowserConfig,
    DistillConfig,
    ExtractionConfig,
    ExtractorChoice,
    ServerConfig,
)
from .events import DistillEvent, DistillStage, EventEmitter

__all__ = [
    # Config
    "BrowserConfig",
    "DistillConfig",
    "ExtractionConfig",
    "ExtractorChoice",
    "READABILITY_CDN_URL",
    "ServerConfig",
    # Events
    "DistillEvent",
    "DistillStage",
    "EventEmitter",
]
