"""
Error types for the timelapse client.

All errors inherit from TimelapseError for easy catching.
"""

from __future__ import annotations


class TimelapseError(Exception):
    """Base exception for all timelapse client failures."""


class ValidationError(TimelapseError):
    """Raised when a selection contains no supported images.

    Caller-correctable; no job is created.
    """


class TransportError(TimelapseError):
    """Raised when the backend cannot be reached or answers with an error.

    Attributes:
        reachable: False when the backend could not be contacted at all
        status_code: HTTP status code of the failed response, if any
    """

    def __init__(
        self,
        message: str,
        reachable: bool = True,
        status_code: int | None = None,
    ) -> None:
        self.reachable = reachable
        self.status_code = status_code
        super().__init__(message)


class BridgeError(TransportError):
    """Raised when a native backend command fails."""

    def __init__(self, command: str, reason: str, reachable: bool = True) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Command '{command}' failed: {reason}", reachable=reachable)


class BackendError(TimelapseError):
    """A render failed on the backend."""

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__(reason)


class StaleResultError(TimelapseError):
    """Raised when a result arrives for a polling scope that was cancelled.

    Never surfaced to the UI.
    """

    def __init__(self, job_id: str | None, generation: int) -> None:
        self.job_id = job_id
        self.generation = generation
        super().__init__(f"Discarding stale result for job {job_id} (generation {generation})")


class InvalidStateTransitionError(TimelapseError):
    """Raised when an operation is not allowed in the current phase."""

    def __init__(self, current_phase: str, operation: str) -> None:
        self.current_phase = current_phase
        self.operation = operation
        super().__init__(f"Cannot {operation} while the job is {current_phase}")
