"""Run-level exceptions.

Item-level failures are returned as typed values on results; these
exceptions are reserved for conditions that stop a run.
"""


class ExportError(Exception):
    """Base exception for run-level export errors."""


class NoItemsConfiguredError(ExportError):
    """Raised when a run is started with no content types configured."""

    def __init__(self, message: str = "No content types configured for export") -> None:
        super().__init__(message)


class SessionError(ExportError):
    """Raised when the progress slot is missing where a run must exist."""

    def __init__(self, operation: str) -> None:
        """Initialize the session error.

        Args:
            operation: Progress operation that found no active run.
        """
        self.operation = operation
        super().__init__(f"No export run in progress for {operation}")


class GenerationError(ExportError):
    """Raised when a run is aborted.

    The run's status is set to error before this is raised, unless the
    run had already completed. Starting a new run replaces it.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize the generation error.

        Args:
            message: Human-readable error message.
            cause: Underlying exception, if any.
        """
        self.message = message
        self.cause = cause
        super().__init__(message)
