"""SQLite schema migrations for the state store."""

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from llms_export.store.errors import MigrationError


logger = structlog.get_logger()

# Current schema version
CURRENT_VERSION = 2


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
    """

    version: int
    description: str
    up_sql: str


# All migrations in order
MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Progress slot and artifact records",
        up_sql="""
-- Single-row progress slot; the row is absent when no run exists
CREATE TABLE IF NOT EXISTS progress_slot (
    slot_key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

-- Per-item artifact metadata used for upload dedup
CREATE TABLE IF NOT EXISTS artifact_records (
    item_id INTEGER PRIMARY KEY,
    content_hash TEXT NOT NULL,
    artifact_url TEXT NOT NULL,
    uploaded_at TEXT NOT NULL,
    size INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_artifact_records_hash ON artifact_records(content_hash);
""",
    ),
    Migration(
        version=2,
        description="Manifest generation history",
        up_sql="""
CREATE TABLE IF NOT EXISTS manifest_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    generated_at TEXT NOT NULL,
    path TEXT NOT NULL,
    size INTEGER NOT NULL,
    items INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_manifest_history_generated_at
    ON manifest_history(generated_at);
""",
    ),
]




def get_migrations_to_apply(
    current_version: int, migrations: Sequence[Migration] = MIGRATIONS
) -> list[Migration]:
    """Return the migrations newer than ``current_version``, oldest first."""
    return sorted(
        (m for m in migrations if m.version > current_version),
        key=lambda m: m.version,
    )


class MigrationManager:
    """Brings a state database up to the current schema.

    Applied versions are recorded in ``schema_version``; each migration is
    committed on its own so a failure leaves the database at the last good
    version.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        migrations: Sequence[Migration] = MIGRATIONS,
    ) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to migrate.
            migrations: Known migrations.
        """
        self._conn = connection
        self._migrations = migrations
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Create the ``schema_version`` table if missing."""
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL,
                description TEXT
            )
            """
        )
        self._conn.commit()

    def get_current_version(self) -> int:
        """Return the highest applied version, 0 for a new database."""
        self.ensure_version_table()
        (version,) = self._conn.execute(
            "SELECT COALESCE(MAX(version), 0) FROM schema_version"
        ).fetchone()
        return int(version)

    def pending(self) -> list[Migration]:
        """Return the migrations not yet applied."""
        return get_migrations_to_apply(self.get_current_version(), self._migrations)

    def apply_migrations(self) -> list[int]:
        """Apply every pending migration in version order.

        Returns:
            Versions applied by this call.

        Raises:
            MigrationError: If a migration fails; earlier ones stay applied.
        """
        applied: list[int] = []
        for migration in self.pending():
            self._apply(migration)
            applied.append(migration.version)

        if applied:
            self._log.info("schema_migrated", versions=applied)
        return applied

    def _apply(self, migration: Migration) -> None:
        self._log.info(
            "applying_migration",
            version=migration.version,
            description=migration.description,
        )
        try:
            self._conn.executescript(migration.up_sql)
            self._conn.execute(
                "INSERT INTO schema_version (version, applied_at, description) "
                "VALUES (?, ?, ?)",
                (
                    migration.version,
                    datetime.now(UTC).isoformat(),
                    migration.description,
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            self._log.error("migration_failed", version=migration.version, error=str(e))
            raise MigrationError(migration.version, str(e)) from e
