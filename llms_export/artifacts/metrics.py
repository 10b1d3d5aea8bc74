"""Metrics collection for artifact uploads."""

from dataclasses import dataclass, field
from typing import ClassVar

from llms_export.artifacts.models import UploadErrorClass


@dataclass
class UploadMetrics:
    """Metrics for upload operations.

    Singleton class that tracks request counts, bytes sent and
    failures by class.
    """

    uploads_total: int = 0
    upload_bytes_total: int = 0
    upload_failures_total: dict[str, int] = field(default_factory=dict)
    upload_duration_ms_total: float = 0.0

    _instance: ClassVar["UploadMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "UploadMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_upload(self, bytes_sent: int, duration_ms: float) -> None:
        """Record an upload attempt.

        Args:
            bytes_sent: Size of the uploaded content.
            duration_ms: Request duration in milliseconds.
        """
        self.uploads_total += 1
        self.upload_bytes_total += bytes_sent
        self.upload_duration_ms_total += duration_ms

    def record_failure(self, error_class: UploadErrorClass) -> None:
        """Record an upload failure.

        Args:
            error_class: Classification of the failure.
        """
        key = error_class.value
        self.upload_failures_total[key] = self.upload_failures_total.get(key, 0) + 1

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary."""
        return {
            "uploads_total": self.uploads_total,
            "upload_bytes_total": self.upload_bytes_total,
            "upload_failures_total": dict(self.upload_failures_total),
            "upload_duration_ms_total": self.upload_duration_ms_total,
        }
