"""Content sources: enumerate exportable items and render them to text."""

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
import yaml

from llms_export.content.errors import ContentSourceError
from llms_export.content.extract import extract_content
from llms_export.content.models import ExtractionOptions, Item


logger = structlog.get_logger()

# Predicate returning True for items that may be exported.
InclusionPredicate = Callable[[Item], bool]


@runtime_checkable
class ContentSource(Protocol):
    """Protocol for content sources.

    A content source owns the items and is responsible for:
    1. Enumerating exportable items per type in a stable order
    2. Looking up the live version of an item for processing
    3. Rendering an item to its normalized text artifact
    """

    def enumerate(self, item_type: str, max_items: int) -> list[Item]:
        """Enumerate exportable items of a type, newest first."""
        ...

    def get_item(self, item_type: str, item_id: int) -> Item | None:
        """Return the live item, or None if it no longer exists."""
        ...

    def extract(self, item: Item, options: ExtractionOptions) -> str:
        """Render an item to text; "" when it has no processable body."""
        ...

    def section_label(self, item_type: str) -> str:
        """Return the plural display name of a type."""
        ...

    def should_include(self, item: Item) -> bool:
        """Check whether an item may be exported."""
        ...


def default_label(item_type: str) -> str:
    """Fallback display label: the capitalized type key."""
    return item_type.replace("_", " ").replace("-", " ").strip().capitalize()


class StaticContentSource:
    """Content source over a fixed collection of items.

    Items come from memory or from a YAML/JSON export file of the form::

        labels:
          post: {plural: Posts, singular: Post}
        items:
          - {id: 1, type: post, title: ..., raw_content: ..., permalink: ...}
    """

    def __init__(
        self,
        items: Iterable[Item],
        labels: dict[str, dict[str, str]] | None = None,
        include: InclusionPredicate | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            items: All known items, in any order.
            labels: Optional per-type labels with ``plural``/``singular`` keys.
            include: Optional extra predicate; False excludes the item.

        Raises:
            ContentSourceError: If two items share an id. Artifacts are
                recorded per id, so ids must be unique across types.
        """
        self._items: dict[tuple[str, int], Item] = {}
        seen_ids: set[int] = set()
        for item in items:
            if item.id in seen_ids:
                msg = f"Duplicate item id {item.id} (type {item.type})"
                raise ContentSourceError(msg)
            seen_ids.add(item.id)
            self._items[(item.type, item.id)] = item
        self._labels = labels or {}
        self._include = include
        self._log = logger.bind(component="content")

    @classmethod
    def from_file(
        cls,
        path: Path,
        include: InclusionPredicate | None = None,
    ) -> "StaticContentSource":
        """Load a source from a YAML or JSON export file.

        Args:
            path: Export file path.
            include: Optional extra inclusion predicate.

        Returns:
            Loaded content source.

        Raises:
            ContentSourceError: If the file is missing or malformed.
        """
        if not path.exists():
            msg = f"Content export file not found: {path}"
            raise ContentSourceError(msg)

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Content export file is not valid YAML/JSON: {e}"
            raise ContentSourceError(msg) from e

        if not isinstance(data, dict):
            msg = "Content export file must contain a mapping"
            raise ContentSourceError(msg)

        try:
            items = [Item.model_validate(raw) for raw in data.get("items", [])]
        except ValueError as e:
            msg = f"Invalid item in content export file: {e}"
            raise ContentSourceError(msg) from e

        labels = {
            str(key): {k: str(v) for k, v in value.items()}
            if isinstance(value, dict)
            else {"plural": str(value)}
            for key, value in (data.get("labels") or {}).items()
        }

        logger.info(
            "content_file_loaded",
            component="content",
            path=str(path),
            items=len(items),
        )
        return cls(items, labels=labels, include=include)

    def available_types(self) -> list[str]:
        """Return every type key present in the source, sorted."""
        return sorted({item_type for item_type, _ in self._items})

    def should_include(self, item: Item) -> bool:
        """Check whether an item may be exported.

        Access-restricted and opted-out items are excluded, then the
        caller-supplied predicate gets the final say.
        """
        if item.password_protected:
            self._log.debug("item_excluded", item_id=item.id, reason="password")
            return False
        if item.noindex:
            self._log.debug("item_excluded", item_id=item.id, reason="noindex")
            return False
        if self._include is not None and not self._include(item):
            self._log.debug("item_excluded", item_id=item.id, reason="predicate")
            return False
        return True

    def enumerate(self, item_type: str, max_items: int) -> list[Item]:
        """Enumerate published items of a type, newest first.

        The limit is applied to the published set before exclusions, so a
        type may yield fewer than ``max_items`` items.

        Args:
            item_type: Type key.
            max_items: Maximum number of candidates considered.

        Returns:
            Exportable items ordered by creation time descending.
        """
        candidates = [
            item
            for (kind, _), item in self._items.items()
            if kind == item_type and item.is_published
        ]
        candidates.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        limited = candidates[:max_items]
        included = [item for item in limited if self.should_include(item)]

        self._log.info(
            "items_enumerated",
            item_type=item_type,
            candidates=len(limited),
            included=len(included),
            excluded=len(limited) - len(included),
        )
        return included

    def get_item(self, item_type: str, item_id: int) -> Item | None:
        """Return the item with the given type and id, if still present."""
        return self._items.get((item_type, item_id))

    def extract(self, item: Item, options: ExtractionOptions) -> str:
        """Render an item to its normalized text artifact."""
        return extract_content(item, options, self.singular_label(item.type))

    def section_label(self, item_type: str) -> str:
        """Return the plural display name of a type."""
        labels = self._labels.get(item_type, {})
        return labels.get("plural") or default_label(item_type) + "s"

    def singular_label(self, item_type: str) -> str:
        """Return the singular display name of a type."""
        labels = self._labels.get(item_type, {})
        return labels.get("singular") or default_label(item_type)

    def content_stats(self) -> dict[str, dict[str, int | str]]:
        """Count published and total items per type.

        Returns:
            Mapping of type key to label and counts.
        """
        stats: dict[str, dict[str, int | str]] = {}
        for item_type in self.available_types():
            items = [item for (kind, _), item in self._items.items() if kind == item_type]
            stats[item_type] = {
                "name": self.section_label(item_type),
                "published_count": sum(1 for item in items if item.is_published),
                "total_count": len(items),
            }
        return stats
