"""Run status state machine."""

from typing import ClassVar

import structlog

from llms_export.progress.models import RunStatus


logger = structlog.get_logger()


class RunStatusError(Exception):
    """Raised when an invalid run status transition is attempted."""

    def __init__(self, from_status: RunStatus, to_status: RunStatus) -> None:
        """Initialize the error.

        Args:
            from_status: The current status.
            to_status: The attempted target status.
        """
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid run status transition: {from_status.value} -> {to_status.value}"
        )


class RunStatusMachine:
    """Forward-only status machine of an export run.

    State transitions:
        INITIALIZING -> PROCESSING: Queue attached
        PROCESSING -> COMPLETED: Manifest written
        INITIALIZING/PROCESSING -> ERROR: Run aborted

    Leaving a terminal status is only possible by clearing the slot.
    """

    VALID_TRANSITIONS: ClassVar[dict[RunStatus, set[RunStatus]]] = {
        RunStatus.INITIALIZING: {RunStatus.PROCESSING, RunStatus.ERROR},
        RunStatus.PROCESSING: {RunStatus.COMPLETED, RunStatus.ERROR},
        RunStatus.COMPLETED: set(),  # Terminal state
        RunStatus.ERROR: set(),  # Terminal state
    }

    def __init__(self, status: RunStatus = RunStatus.INITIALIZING) -> None:
        """Initialize the machine at a persisted status.

        Args:
            status: Current status of the run.
        """
        self._status = status
        self._log = logger.bind(component="progress")

    @property
    def status(self) -> RunStatus:
        """Get the current status."""
        return self._status

    def can_transition(self, to_status: RunStatus) -> bool:
        """Check if a transition to the given status is valid."""
        return to_status in self.VALID_TRANSITIONS.get(self._status, set())

    def transition(self, to_status: RunStatus) -> RunStatus:
        """Transition to a new status.

        Args:
            to_status: The target status.

        Returns:
            The new status.

        Raises:
            RunStatusError: If the transition is invalid.
        """
        if not self.can_transition(to_status):
            self._log.error(
                "invariant_violation",
                error_type="illegal_status_transition",
                from_status=self._status.value,
                to_status=to_status.value,
            )
            raise RunStatusError(self._status, to_status)

        old_status = self._status
        self._status = to_status
        self._log.info(
            "run_status_transition",
            from_status=old_status.value,
            to_status=to_status.value,
        )
        return to_status

    def is_terminal(self) -> bool:
        """Check if the current status is terminal."""
        return self._status in (RunStatus.COMPLETED, RunStatus.ERROR)
