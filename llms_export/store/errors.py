"""Domain exceptions for the state store.

This module defines a hierarchy of exceptions for the state store layer,
separating infrastructure errors (database issues) from domain errors.
"""


class StateStoreError(Exception):
    """Base exception for all state store errors."""


class ConnectionError(StateStoreError):  # noqa: A001
    """Raised when database connection fails or is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class MigrationError(StateStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
