"""Error types for content sources."""


class ContentSourceError(Exception):
    """Raised when a content source cannot be loaded or enumerated."""
