"""Main content extraction inside a rendered page."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError

from ..browser.protocols import Page
from ..errors import ExtractionFailed
from ..models.config import ExtractionConfig, ExtractorChoice
from .scripts import DOMDISTILLER_ENTRY_JS, READABILITY_ENTRY_JS, ScriptPayload

logger = logging.getLogger(__name__)


class PageExtractor(ABC):
    """
    Base for strategies that inject a library and call its entry point.

    Subclasses define the payload and how the structured result maps
    to an HTML fragment.
    """

    name = "extractor"
    entry = ""

    def __init__(self, source: Optional[str]) -> None:
        self.payload = ScriptPayload(name=self.name, source=source, entry=self.entry)

    async def _inject(self, page: Page) -> None:
        options = self.payload.script_tag_options()
        if not options:
            raise ExtractionFailed(f"No script source configured for {self.name}")

        logger.debug(f"Injecting {self.name} script")
        try:
            await page.add_script_tag(**options)
        except PlaywrightError as e:
            raise ExtractionFailed(f"Could not inject {self.name}: {e}") from e

    async def _invoke(self, page: Page) -> Any:
        logger.debug(f"Running {self.name}")
        try:
            return await page.evaluate(self.payload.entry)
        except PlaywrightError as e:
            raise ExtractionFailed(f"{self.name} script failed: {e}") from e

    @abstractmethod
    def content_from(self, result: Any) -> str:
        """Map the entry point's return value to an HTML fragment."""
        pass

    async def extract(self, page: Page) -> str:
        """
        Extract the article fragment from an already navigated page.

        Args:
            page: Page that has finished loading

        Returns:
            HTML fragment

        Raises:
            ExtractionFailed: If the script throws or returns an unexpected shape
        """
        await self._inject(page)
        result = await self._invoke(page)
        content = self.content_from(result)
        logger.debug(f"{self.name} extracted {len(content)} characters")
        return content


class ReadabilityExtractor(PageExtractor):
    """Mozilla Readability: ``new Readability(document).parse().content``."""

    name = "readability"
    entry = READABILITY_ENTRY_JS

    def content_from(self, result: Any) -> str:
        if not isinstance(result, dict):
            raise ExtractionFailed("Readability found no article on the page")

        content = result.get("content")
        if not isinstance(content, str):
            raise ExtractionFailed(f"Readability article has no content: {type(content).__name__}")
        return content


class DomDistillerExtractor(PageExtractor):
    """
    Chromium DOM Distiller.

    ``DomDistiller.apply()`` returns nested arrays; the distilled HTML
    sits at position [2][1]. No other position is tried.
    """

    name = "domdistiller"
    entry = DOMDISTILLER_ENTRY_JS

    def content_from(self, result: Any) -> str:
        try:
            content = _at_path(result, (2, 1))
        except LookupError as e:
            raise ExtractionFailed(f"Unexpected DOM Distiller result shape: {e}") from e

        if not isinstance(content, str):
            raise ExtractionFailed(f"DOM Distiller content is {type(content).__name__}, expected str")
        return content


def _at_path(value: Any, path: tuple[int, ...]) -> Any:
    """Index into nested lists, checking each level is a long enough list."""
    for depth, index in enumerate(path):
        if not isinstance(value, list):
            raise LookupError(f"level {depth} is {type(value).__name__}, not a list")
        if index >= len(value):
            raise LookupError(f"level {depth} has {len(value)} items, need index {index}")
        value = value[index]
    return value


def create_extractor(
    choice: ExtractorChoice,
    config: Optional[ExtractionConfig] = None,
) -> PageExtractor:
    """Build the strategy for an extractor choice."""
    config = config or ExtractionConfig()
    if choice == ExtractorChoice.READABILITY:
        return ReadabilityExtractor(config.readability_script)
    return DomDistillerExtractor(config.domdistiller_script)


async def extract(
    page: Page,
    choice: ExtractorChoice = ExtractorChoice.READABILITY,
    config: Optional[ExtractionConfig] = None,
) -> str:
    """Run exactly one extraction strategy against a loaded page."""
    return await create_extractor(choice, config).extract(page)
