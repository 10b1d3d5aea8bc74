"""SQLite state store implementation."""

import sqlite3
import time
import uuid
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog

from llms_export.store.errors import ConnectionError as StoreConnectionError
from llms_export.store.metrics import StoreMetrics, TransactionContext
from llms_export.store.migrations import CURRENT_VERSION, MigrationManager
from llms_export.store.models import ItemArtifactRecord, ManifestRecord


logger = structlog.get_logger()

Clock = Callable[[], datetime]

# Receives the live slot payload (None if absent or expired) and returns the
# payload to write, or None to leave the slot untouched.
SlotUpdater = Callable[[str | None], str | None]


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class StateStore:
    """SQLite state store for the progress slot, artifact records and
    manifest history.

    Provides transactional APIs for managing persistent state across
    polling steps and process restarts. Uses WAL mode for reliability and
    supports schema migrations.
    """

    def __init__(
        self,
        db_path: Path | str,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the state store.

        Args:
            db_path: Path to SQLite database file.
            clock: Time source; defaults to the UTC wall clock.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._clock = clock or utc_now
        self._conn: sqlite3.Connection | None = None
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def now(self) -> datetime:
        """Return the store's notion of the current time."""
        return self._clock()

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._log.debug("connecting_to_database")

        self._conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.debug(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.debug("database_closed")

    def __enter__(self) -> "StateStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for write transactions with timing and logging.

        The transaction takes the database write lock up front, so a
        read-modify-write inside it cannot interleave with another writer.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(
            tx_id=tx_id, start_time_ns=start_ns, operation=operation
        )

        if not conn.in_transaction:
            conn.execute("BEGIN IMMEDIATE")

        try:
            yield ctx
            conn.commit()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)

            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

        except Exception:
            conn.rollback()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000

            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )
            raise

    # ===== Progress Slot =====

    def _read_live_slot(self, conn: sqlite3.Connection, key: str) -> str | None:
        """Read a slot payload, treating an expired row as absent."""
        row = conn.execute(
            "SELECT payload, expires_at FROM progress_slot WHERE slot_key = ?",
            (key,),
        ).fetchone()

        if row is None:
            return None

        if datetime.fromisoformat(row["expires_at"]) <= self.now():
            return None

        payload: str = row["payload"]
        return payload

    def read_slot(self, key: str) -> str | None:
        """Read the payload stored in a slot.

        Args:
            key: Slot key.

        Returns:
            The payload, or None if the slot is absent or expired.
        """
        conn = self._ensure_connected()
        return self._read_live_slot(conn, key)

    def mutate_slot(
        self,
        key: str,
        updater: SlotUpdater,
        ttl: timedelta,
    ) -> str | None:
        """Atomically read, transform and write a slot.

        Any write refreshes the slot's expiry to ``now + ttl``. An expired
        row is purged and presented to the updater as absent.

        Args:
            key: Slot key.
            updater: Transformation of the live payload.
            ttl: Time-to-live applied on write.

        Returns:
            The live payload after the call (None if absent).
        """
        with self._transaction("mutate_slot") as ctx:
            conn = self._ensure_connected()
            expired = conn.execute(
                "DELETE FROM progress_slot WHERE slot_key = ? AND expires_at <= ?",
                (key, self.now().isoformat()),
            ).rowcount
            if expired:
                self._metrics.record_slot_expired()
                self._log.info("progress_slot_expired", slot_key=key)
                ctx.add_affected_rows(expired)

            current = self._read_live_slot(conn, key)
            new_payload = updater(current)
            if new_payload is None:
                return current

            now = self.now()
            conn.execute(
                """
                INSERT INTO progress_slot (slot_key, payload, updated_at, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(slot_key) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (key, new_payload, now.isoformat(), (now + ttl).isoformat()),
            )
            ctx.add_affected_rows(1)
            self._metrics.record_slot_write()
            return new_payload

    def delete_slot(self, key: str) -> bool:
        """Delete a slot.

        Args:
            key: Slot key.

        Returns:
            True if a row was deleted.
        """
        with self._transaction("delete_slot") as ctx:
            conn = self._ensure_connected()
            deleted = conn.execute(
                "DELETE FROM progress_slot WHERE slot_key = ?", (key,)
            ).rowcount
            ctx.add_affected_rows(deleted)
        return deleted > 0

    # ===== Artifact Records =====

    def get_artifact_record(self, item_id: int) -> ItemArtifactRecord | None:
        """Get the artifact record of an item.

        Args:
            item_id: Item identifier.

        Returns:
            The record, or None if the item was never uploaded.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM artifact_records WHERE item_id = ?",
            (item_id,),
        ).fetchone()

        if row is None:
            return None

        return self._row_to_record(row)

    def get_artifact_records(
        self, item_ids: Iterable[int]
    ) -> dict[int, ItemArtifactRecord]:
        """Get artifact records for several items.

        Args:
            item_ids: Item identifiers.

        Returns:
            Mapping of item id to record for the ids that have one.
        """
        records: dict[int, ItemArtifactRecord] = {}
        for item_id in dict.fromkeys(item_ids):
            record = self.get_artifact_record(item_id)
            if record is not None:
                records[item_id] = record
        return records

    def upsert_artifact_record(self, record: ItemArtifactRecord) -> None:
        """Insert or replace the artifact record of an item.

        Args:
            record: Record to store.
        """
        with self._transaction("upsert_artifact_record") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO artifact_records
                    (item_id, content_hash, artifact_url, uploaded_at, size)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(item_id) DO UPDATE SET
                    content_hash = excluded.content_hash,
                    artifact_url = excluded.artifact_url,
                    uploaded_at = excluded.uploaded_at,
                    size = excluded.size
                """,
                (
                    record.item_id,
                    record.content_hash,
                    record.artifact_url,
                    record.uploaded_at.isoformat(),
                    record.size,
                ),
            )
            ctx.add_affected_rows(1)
        self._metrics.record_upsert()

    def delete_artifact_record(self, item_id: int) -> bool:
        """Delete the artifact record of an item.

        Args:
            item_id: Item identifier.

        Returns:
            True if a record was deleted.
        """
        with self._transaction("delete_artifact_record") as ctx:
            conn = self._ensure_connected()
            deleted = conn.execute(
                "DELETE FROM artifact_records WHERE item_id = ?", (item_id,)
            ).rowcount
            ctx.add_affected_rows(deleted)
        self._metrics.record_deleted(deleted)
        return deleted > 0

    def delete_all_artifact_records(self) -> int:
        """Delete every artifact record.

        Returns:
            Number of records deleted.
        """
        with self._transaction("delete_all_artifact_records") as ctx:
            conn = self._ensure_connected()
            deleted = conn.execute("DELETE FROM artifact_records").rowcount
            ctx.add_affected_rows(deleted)
        self._metrics.record_deleted(deleted)
        self._log.info("artifact_records_deleted", count=deleted)
        return deleted

    def _row_to_record(self, row: sqlite3.Row) -> ItemArtifactRecord:
        """Convert a database row to an ItemArtifactRecord."""
        return ItemArtifactRecord(
            item_id=row["item_id"],
            content_hash=row["content_hash"],
            artifact_url=row["artifact_url"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
            size=row["size"],
        )

    # ===== Manifest History =====

    def record_manifest(self, record: ManifestRecord) -> None:
        """Append a manifest history entry.

        Args:
            record: The finalized manifest's metadata.
        """
        with self._transaction("record_manifest") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO manifest_history (generated_at, path, size, items)
                VALUES (?, ?, ?, ?)
                """,
                (
                    record.generated_at.isoformat(),
                    record.path,
                    record.size,
                    record.items,
                ),
            )
            ctx.add_affected_rows(1)

    def get_last_manifest(self) -> ManifestRecord | None:
        """Get the most recent manifest history entry."""
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT generated_at, path, size, items FROM manifest_history
            ORDER BY generated_at DESC, id DESC
            LIMIT 1
            """
        ).fetchone()

        if row is None:
            return None

        return ManifestRecord(
            generated_at=datetime.fromisoformat(row["generated_at"]),
            path=row["path"],
            size=row["size"],
            items=row["items"],
        )

    def clear_manifest_history(self) -> int:
        """Delete all manifest history entries.

        Returns:
            Number of entries deleted.
        """
        with self._transaction("clear_manifest_history") as ctx:
            conn = self._ensure_connected()
            deleted = conn.execute("DELETE FROM manifest_history").rowcount
            ctx.add_affected_rows(deleted)
        return deleted

    # ===== Stats =====

    def get_stats(self) -> dict[str, int]:
        """Get row counts for all tables.

        Returns:
            Dictionary mapping table name to row count.
        """
        conn = self._ensure_connected()

        stats: dict[str, int] = {}

        for table in ("progress_slot", "artifact_records", "manifest_history"):
            cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            stats[table] = cursor.fetchone()[0]

        return stats

    def get_schema_version(self) -> int:
        """Get current schema version."""
        conn = self._ensure_connected()
        migration_mgr = MigrationManager(conn)
        return migration_mgr.get_current_version()
