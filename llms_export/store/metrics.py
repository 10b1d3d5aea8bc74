"""Metrics collection for the state store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for state store operations.

    Attributes:
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of transactions.
        slot_writes_total: Progress slot writes (each refreshes the TTL).
        slot_expired_total: Progress slots found past their expiry.
        records_upserted_total: Artifact records inserted or replaced.
        records_deleted_total: Artifact records deleted.
    """

    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    slot_writes_total: int = 0
    slot_expired_total: int = 0
    records_upserted_total: int = 0
    records_deleted_total: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_slot_write(self) -> None:
        """Record a progress slot write."""
        self.slot_writes_total += 1

    def record_slot_expired(self) -> None:
        """Record an expired progress slot."""
        self.slot_expired_total += 1

    def record_upsert(self) -> None:
        """Record an artifact record upsert."""
        self.records_upserted_total += 1

    def record_deleted(self, count: int) -> None:
        """Record deleted artifact records.

        Args:
            count: Number of records deleted.
        """
        self.records_deleted_total += count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "slot_writes_total": self.slot_writes_total,
            "slot_expired_total": self.slot_expired_total,
            "records_upserted_total": self.records_upserted_total,
            "records_deleted_total": self.records_deleted_total,
        }

    @property
    def avg_tx_duration_ms(self) -> float:
        """Calculate average transaction duration."""
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
