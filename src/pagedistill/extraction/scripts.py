"""Script payloads sent into the rendered page."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# esbuild-bundled libraries call a __name(fn, name) helper that pages don't define
NAME_HELPER_JS = "() => { window.__name = (n, v) => v; }"

READABILITY_ENTRY_JS = "() => new Readability(document).parse()"

DOMDISTILLER_ENTRY_JS = "() => org.chromium.distiller.DomDistiller.apply()"


@dataclass(frozen=True)
class ScriptPayload:
    """
    A library bundle plus the entry point to call once it is loaded.

    Attributes:
        name: Library name used in logs and errors
        source: URL or filesystem path of the bundle (None = not configured)
        entry: Function expression evaluated in the page after injection
    """

    name: str
    source: Optional[str]
    entry: str

    @property
    def is_url(self) -> bool:
        return bool(self.source) and self.source.startswith(("http://", "https://"))  # type: ignore[union-attr]

    def script_tag_options(self) -> dict[str, str]:
        """Keyword arguments for ``page.add_script_tag``."""
        if not self.source:
            return {}
        if self.is_url:
            return {"url": self.source}
        return {"path": self.source}
