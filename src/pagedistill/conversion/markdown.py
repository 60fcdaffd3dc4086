"""HTML to Markdown conversion."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Optional
from urllib.parse import urljoin

import html2text
from bs4 import BeautifulSoup, NavigableString, Tag

from ..errors import ConversionFailed

logger = logging.getLogger(__name__)

HIGHLIGHT_CLASS_RE = re.compile(r"highlight-source-[a-z]+")

# Blockquote markers html2text writes at the start of a line, e.g. ">> "
QUOTE_PREFIX_RE = re.compile(r"(?:>+ ?)?")
LIST_MARKER_RE = re.compile(r"\s*(?:[*+-]|\d+\.)\s*")


def _opening_tag(node: Tag) -> str:
    """Serialized opening tag of an element, e.g. ``<pre class="x">``."""
    return str(node).split(">", 1)[0] + ">"


def _language_in(node: Tag) -> Optional[str]:
    match = HIGHLIGHT_CLASS_RE.search(_opening_tag(node))
    if match:
        return match.group(0).split("-")[-1]
    return None


def detect_fence_language(pre: Tag) -> str:
    """
    Guess the language of a ``<pre>`` block from ``highlight-source-<lang>`` classes.

    The element's own opening tag is checked first. Failing that, the
    parent is checked, but only when the ``<pre>`` is its only child;
    otherwise the parent is a wrapper around unrelated content.
    Whitespace-only text between tags does not count as a child.

    Returns:
        Language name, or an empty string when nothing matches
    """
    try:
        lang = _language_in(pre)
        if lang:
            return lang

        parent = pre.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return ""
        children = [node for node in parent.contents if isinstance(node, Tag) or str(node).strip()]
        if len(children) != 1:
            return ""

        return _language_in(parent) or ""
    except Exception as e:
        logger.debug(f"Language detection failed: {e}")
        return ""


def pre_code_text(pre: Tag) -> str:
    """Concatenate the text of every direct child of ``<pre>`` without escaping."""
    parts = []
    for index, child in enumerate(pre.children):
        text = child.get_text() if isinstance(child, Tag) else str(child)
        # Browsers drop a newline directly after <pre>
        if index == 0 and isinstance(child, NavigableString) and text.startswith("\n"):
            text = text[1:]
        parts.append(text)
    return "".join(parts)


def render_fence(lang: str, code: str) -> str:
    """Fenced code block with a blank line before and after."""
    return "\n```" + lang + "\n" + code + "\n```\n\n"


def list_indent(pre: Tag) -> str:
    """Indentation html2text gives the content of the list item holding ``pre``."""
    lists = [node.name for node in reversed(pre.find_parents(["ul", "ol"]))]
    if not lists:
        return ""

    # Two spaces per enclosing list, three below an ordered one, then the marker width
    indent = ""
    parent = None
    for name in lists:
        indent += "   " if parent == "ol" else "  "
        parent = name
    return indent + ("   " if lists[-1] == "ol" else "  ")


def _is_blank(line: str) -> bool:
    return not line.replace(">", "").strip()


class HtmlToMarkdown:
    """
    Converts extracted HTML fragments to GitHub-flavored Markdown.

    Uses html2text as the general engine (pipe tables, ``~~strike~~``)
    with two overrides applied before it runs: every ``<pre>`` becomes a
    fenced code block with a detected language, and checkbox inputs
    become ``[x]``/``[ ]`` task markers. Overridden nodes are swapped for
    placeholder tokens so html2text never rewrites them.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert(html_string, "https://example.com/post")
    """

    def __init__(
        self,
        body_width: int = 0,
        inline_links: bool = True,
        wrap_links: bool = False,
        ignore_images: bool = False,
        ignore_tables: bool = False,
        protect_links: bool = False,
        unicode_snob: bool = True,
        escape_snob: bool = True,
    ):
        """
        Initialize the Markdown converter.

        Args:
            body_width: Max line width (0 = no wrapping)
            inline_links: Use inline [text](url) vs reference style
            wrap_links: Wrap long links
            ignore_images: Skip image conversion
            ignore_tables: Skip table conversion
            protect_links: Prevent link mangling
            unicode_snob: Use Unicode chars where possible
            escape_snob: Escape special Markdown chars
        """
        self._options = {
            "body_width": body_width,
            "inline_links": inline_links,
            "wrap_links": wrap_links,
            "protect_links": protect_links,
            "ignore_images": ignore_images,
            "ignore_tables": ignore_tables,
            "unicode_snob": unicode_snob,
            "escape_snob": escape_snob,
            "mark_code": False,
            "default_image_alt": "",
            "single_line_break": False,
        }

    def _engine(self, base_url: Optional[str]) -> html2text.HTML2Text:
        # HTML2Text keeps parser state, so each conversion gets its own
        converter = html2text.HTML2Text(baseurl=base_url or "")
        for name, value in self._options.items():
            setattr(converter, name, value)
        return converter

    def _protect(self, soup: BeautifulSoup, nonce: str) -> tuple[list[tuple[list[str], str]], list[str]]:
        """
        Replace <pre> blocks and checkboxes with tokens; return their Markdown.

        Each block is kept as its fence lines plus the list indentation its
        lines need to stay inside the enclosing list item.
        """
        blocks: list[tuple[list[str], str]] = []
        inlines: list[str] = []

        pres = [pre for pre in soup.find_all("pre") if pre.find_parent("pre") is None]
        for pre in pres:
            fence = render_fence(detect_fence_language(pre), pre_code_text(pre))
            blocks.append((fence.strip("\n").split("\n"), list_indent(pre)))
            placeholder = soup.new_tag("p")
            placeholder.string = f"x{nonce}b{len(blocks) - 1}x"
            pre.replace_with(placeholder)

        for box in soup.find_all("input", attrs={"type": "checkbox"}):
            inlines.append("[x] " if box.has_attr("checked") else "[ ] ")
            box.replace_with(NavigableString(f"x{nonce}i{len(inlines) - 1}x"))

        return blocks, inlines

    def _restore(
        self,
        markdown: str,
        nonce: str,
        blocks: list[tuple[list[str], str]],
        inlines: list[str],
    ) -> str:
        """
        Put the protected Markdown back in place of the tokens.

        A fence takes over the blockquote prefix html2text wrote on its
        token line, plus its list indentation, on every line. It is
        separated from the surrounding text by exactly one blank line.
        """
        inline_re = re.compile(rf"x{nonce}i(\d+)x ?")
        markdown = inline_re.sub(lambda m: inlines[int(m.group(1))], markdown)

        block_re = re.compile(rf"(.*?)x{nonce}b(\d+)x[ \t]*(.*)")
        pending = markdown.split("\n")[::-1]
        output: list[str] = []
        # Blank line to write before the next text that follows a fence
        gap: Optional[str] = None

        while pending:
            line = pending.pop()
            match = block_re.fullmatch(line)

            if match is None:
                if gap is not None:
                    if _is_blank(line):
                        gap = line
                        continue
                    output.append(gap)
                    gap = None
                output.append(line)
                continue

            lead, index, rest = match.groups()
            lines, indent = blocks[int(index)]
            quote = QUOTE_PREFIX_RE.match(lead).group(0)
            marker = lead[len(quote) :]

            if gap is not None and marker.strip():
                output.append(gap)
            gap = None

            if LIST_MARKER_RE.fullmatch(marker):
                # The code block opens the list item; the marker keeps its own line
                output.append((quote + marker).rstrip())
            else:
                if marker.strip():
                    output.append(lead.rstrip())
                while output and _is_blank(output[-1]):
                    output.pop()
                if output:
                    output.append(quote.rstrip())

            prefix = quote + indent
            output.extend(prefix + text if text else prefix.rstrip() for text in lines)
            gap = quote.rstrip()

            if rest.strip():
                pending.append(quote + rest)

        return "\n".join(output)

    def _clean_output(self, markdown: str) -> str:
        """Clean up the converted Markdown."""
        # Remove excessive blank lines
        markdown = re.sub(r"\n{3,}", "\n\n", markdown)

        # Remove trailing whitespace on each line
        return "\n".join(line.rstrip() for line in markdown.split("\n"))

    def _fix_relative_links(self, markdown: str, base_url: str) -> str:
        """Ensure all links are absolute."""

        def replace_link(match: re.Match[str]) -> str:
            text = match.group(1)
            url = match.group(2)

            # Skip anchors and already absolute URLs
            if url.startswith(("#", "http://", "https://", "mailto:", "tel:", "data:")):
                result: str = match.group(0)
                return result

            return f"[{text}]({urljoin(base_url, url)})"

        # Match markdown links [text](url)
        return re.sub(r"\[([^\]]+)\]\(([^)\s]+)\)", replace_link, markdown)

    def convert(self, html: str, url: Optional[str] = None) -> str:
        """
        Convert an HTML fragment to Markdown.

        Code blocks are substituted back after cleanup and link fixing,
        so their whitespace reaches the output untouched.

        Args:
            html: HTML content string
            url: Source URL for resolving relative links

        Returns:
            Markdown string

        Raises:
            ConversionFailed: If the Markdown engine fails
        """
        nonce = uuid.uuid4().hex
        try:
            soup = BeautifulSoup(html, "html.parser")
            blocks, inlines = self._protect(soup, nonce)

            markdown = self._engine(url).handle(str(soup))
            markdown = self._clean_output(markdown)
            if url:
                markdown = self._fix_relative_links(markdown, url)

            markdown = self._restore(markdown, nonce, blocks, inlines)
        except Exception as e:
            raise ConversionFailed(f"Failed to convert HTML to Markdown: {e}") from e

        # Leading spaces are list indentation, only newlines are trimmed
        return markdown.strip("\n") + "\n"


def to_markdown(fragment: str, url: Optional[str] = None) -> str:
    """Convert an extracted fragment with the default converter settings."""
    return HtmlToMarkdown().convert(fragment, url)
