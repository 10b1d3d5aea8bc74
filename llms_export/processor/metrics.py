"""Metrics collection for item processing."""

from dataclasses import dataclass, field
from typing import ClassVar

from llms_export.processor.models import ProcessErrorClass


@dataclass
class ProcessorMetrics:
    """Counters for processed items.

    Attributes:
        items_uploaded_total: Items whose artifact was uploaded.
        items_reused_total: Items whose stored artifact was reused.
        items_failed_total: Failures keyed by error class.
    """

    items_uploaded_total: int = 0
    items_reused_total: int = 0
    items_failed_total: dict[str, int] = field(default_factory=dict)

    _instance: ClassVar["ProcessorMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ProcessorMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_uploaded(self) -> None:
        self.items_uploaded_total += 1

    def record_reused(self) -> None:
        self.items_reused_total += 1

    def record_failed(self, error_class: ProcessErrorClass) -> None:
        key = error_class.value
        self.items_failed_total[key] = self.items_failed_total.get(key, 0) + 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary."""
        return {
            "items_uploaded_total": self.items_uploaded_total,
            "items_reused_total": self.items_reused_total,
            "items_failed_total": dict(self.items_failed_total),
        }
