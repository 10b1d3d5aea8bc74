"""Item-to-text extraction."""

import structlog

from llms_export.content.markup import html_to_markdown, normalize_whitespace
from llms_export.content.models import ExtractionOptions, Item


logger = structlog.get_logger()

TRUNCATION_MARKER = "*[content truncated]*"

# A period past this fraction of the truncated text ends it instead of the cap.
SENTENCE_BOUNDARY_RATIO = 0.8

# Taxonomies that only carry presentation hints.
SKIPPED_TAXONOMIES = frozenset({"post_format"})


def limit_words(content: str, max_words: int) -> str:
    """Truncate text to a word cap, preferring a sentence boundary.

    When the text exceeds ``max_words`` words, the first ``max_words``
    words are kept (joined by single spaces). If the last period of that
    text sits past 80% of its length, the text is cut right after it. A
    truncation marker is appended after a blank line.

    Args:
        content: Normalized text.
        max_words: Maximum number of words to keep.

    Returns:
        The original text, or the truncated text with a marker.
    """
    words = content.split()
    if len(words) <= max_words:
        return content

    limited = " ".join(words[:max_words])
    last_period = limited.rfind(".")
    if last_period != -1 and last_period > len(limited) * SENTENCE_BOUNDARY_RATIO:
        limited = limited[: last_period + 1]

    return f"{limited}\n\n{TRUNCATION_MARKER}"


def process_body(raw_content: str, max_words: int) -> str:
    """Strip markup, normalize whitespace and apply the word cap.

    Args:
        raw_content: Body markup.
        max_words: Word cap for the body.

    Returns:
        Processed body, or "" when nothing textual remains.
    """
    if not raw_content.strip():
        return ""
    body = normalize_whitespace(html_to_markdown(raw_content))
    if not body:
        return ""
    return limit_words(body, max_words)


def format_meta(item: Item, type_label: str) -> str:
    """Format the one-line metadata block."""
    parts = [f"**Published:** {item.created_at.strftime('%Y-%m-%d')}"]
    if item.author:
        parts.append(f"**Author:** {item.author}")
    parts.append(f"**Type:** {type_label}")
    return " | ".join(parts)


def format_taxonomies(item: Item) -> str:
    """Format the taxonomy block, or "" when the item has no terms."""
    lines = [
        f"**{name}:** {', '.join(terms)}"
        for name, terms in item.taxonomies.items()
        if name not in SKIPPED_TAXONOMIES and terms
    ]
    if not lines:
        return ""
    return "## Taxonomies\n\n" + "\n".join(lines)


def extract_content(item: Item, options: ExtractionOptions, type_label: str) -> str:
    """Render an item to its normalized text artifact.

    Args:
        item: Item to render.
        options: Extraction options.
        type_label: Singular display label of the item's type.

    Returns:
        The artifact text, or "" if the item has no processable body.
    """
    log = logger.bind(component="content", item_id=item.id, item_type=item.type)

    body = process_body(item.raw_content, options.max_words)
    if not body:
        log.warning("empty_body_after_processing", raw_length=len(item.raw_content))
        return ""

    parts = [f"# {item.title}"]

    if options.include_meta:
        parts.append(format_meta(item, type_label))

    excerpt = item.excerpt.strip()
    if options.include_excerpts and excerpt:
        parts.append(f"> {excerpt}")

    parts.append(body)

    if options.include_taxonomies:
        taxonomy_block = format_taxonomies(item)
        if taxonomy_block:
            parts.append(taxonomy_block)

    parts.append(f"---\n**Original URL:** {item.permalink}")

    content = "\n\n".join(parts)
    log.debug("content_extracted", chars=len(content))
    return content
