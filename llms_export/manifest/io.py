"""File I/O for the manifest.

Provides atomic writing so readers never observe a half-written manifest.
"""

import hashlib
from pathlib import Path

import structlog

from llms_export.manifest.models import GeneratedFile


logger = structlog.get_logger()


class AtomicWriter:
    """Writes files through a temporary sibling and a rename."""

    def __init__(self) -> None:
        self._log = logger.bind(component="manifest")

    def write(self, path: Path, content: str) -> GeneratedFile:
        """Write content to a file atomically.

        Readers see either the complete old file or the complete new one.

        Args:
            path: Target file path.
            content: Content to write (encoded as UTF-8).

        Returns:
            GeneratedFile with path, checksum and size.
        """
        content_bytes = content.encode("utf-8")
        sha256 = hashlib.sha256(content_bytes).hexdigest()

        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_bytes(content_bytes)
        temp_path.replace(path)

        self._log.debug(
            "file_written",
            path=str(path),
            bytes=len(content_bytes),
            sha256=sha256[:12],
        )

        return GeneratedFile(
            path=str(path),
            bytes_written=len(content_bytes),
            sha256=sha256,
        )

    def delete(self, path: Path) -> bool:
        """Delete a file if present.

        Returns:
            True if a file was removed.
        """
        if not path.exists():
            return False
        path.unlink()
        self._log.info("file_deleted", path=str(path))
        return True
