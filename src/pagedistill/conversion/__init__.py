"""Content conversion for pagedistill (HTML to Markdown)."""

from .markdown import (
    HtmlToMarkdown,
    detect_fence_language,
    list_indent,
    pre_code_text,
    render_fence,
    to_markdown,
)

__all__ = [
    "HtmlToMarkdown",
    "detect_fence_language",
    "list_indent",
    "pre_code_text",
    "render_fence",
    "to_markdown",
]
