"""Markup-to-text conversion for item bodies.

Converts body HTML into lightweight Markdown: headings, paragraphs, line
breaks, emphasis, links and list items keep their structure, everything
else is reduced to its text.
"""

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag


_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_STRONG_TAGS = {"strong", "b"}
_EMPHASIS_TAGS = {"em", "i"}
_LIST_TAGS = {"ul", "ol"}
_DROPPED_TAGS = {"script", "style", "noscript", "template"}

_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v\xa0]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def html_to_markdown(markup: str) -> str:
    """Convert body markup to lightweight Markdown.

    Args:
        markup: Raw HTML (or plain text) body.

    Returns:
        Converted text; whitespace is not yet normalized.
    """
    if not markup or not markup.strip():
        return ""
    soup = BeautifulSoup(markup, "lxml")
    root = soup.body if soup.body is not None else soup
    return _render_children(root)


def _render_children(node: Tag | BeautifulSoup) -> str:
    return "".join(_render(child) for child in node.children)


def _render(node: object) -> str:  # noqa: PLR0911
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return str(node)
    if not isinstance(node, Tag):
        return ""

    name = node.name
    if name in _DROPPED_TAGS:
        return ""

    inner = _render_children(node)

    if name in _HEADING_TAGS:
        level = int(name[1])
        return f"\n\n{'#' * level} {inner.strip()}\n\n"
    if name == "p":
        return f"{inner}\n\n"
    if name == "br":
        return "\n"
    if name in _STRONG_TAGS:
        return f"**{inner}**" if inner.strip() else inner
    if name in _EMPHASIS_TAGS:
        return f"*{inner}*" if inner.strip() else inner
    if name == "a":
        href = node.get("href")
        if isinstance(href, str) and href:
            return f"[{inner}]({href})"
        return inner
    if name in _LIST_TAGS:
        return f"\n{inner}\n"
    if name == "li":
        return f"- {inner.strip()}\n"
    return inner


def normalize_whitespace(content: str) -> str:
    """Collapse horizontal whitespace and blank-line runs.

    Runs of spaces and tabs become one space, every line is trimmed and
    consecutive blank lines collapse to a single blank line.

    Args:
        content: Text to normalize.

    Returns:
        Normalized text without leading or trailing whitespace.
    """
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    content = _HORIZONTAL_SPACE.sub(" ", content)
    content = "\n".join(line.strip() for line in content.split("\n"))
    content = _EXCESS_NEWLINES.sub("\n\n", content)
    return content.strip()
