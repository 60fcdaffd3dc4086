"""Content extraction strategies run inside the rendered page."""

from .extractor import (
    DomDistillerExtractor,
    PageExtractor,
    ReadabilityExtractor,
    create_extractor,
    extract,
)
from .scripts import NAME_HELPER_JS, ScriptPayload

__all__ = [
    "DomDistillerExtractor",
    "NAME_HELPER_JS",
    "PageExtractor",
    "ReadabilityExtractor",
    "ScriptPayload",
    "create_extractor",
    "extract",
]
