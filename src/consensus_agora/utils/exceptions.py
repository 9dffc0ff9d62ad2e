"""Custom exceptions for Consensus Agora.

This module defines application-specific exceptions for better
error handling and debugging. Vote-limit hits are not exceptions:
they are returned as structured data so the moderator can react.
"""

from typing import Optional, Any


class ConsensusAgoraError(Exception):
    """Base exception for all Consensus Agora errors.

    All custom exceptions in the application should inherit from this class
    to allow for easy catching of application-specific errors.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(ConsensusAgoraError):
    """Raised when there's an error in configuration.

    This includes missing configuration files, invalid YAML syntax,
    missing required fields, or invalid field values.
    """

    pass


class InvalidStateError(ConsensusAgoraError):
    """Raised when an operation cannot run against the current meeting state.

    Examples are voting in a meeting without participants or asking an
    unknown participant to speak.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize invalid state error.

        Args:
            message: Error message.
            operation: Operation that was rejected.
            details: Additional error details.
        """
        super().__init__(message, details)
        self.operation = operation


class DispatchError(ConsensusAgoraError):
    """Raised when a sub-agent dispatch fails.

    The LLM collaborator owns retries, so a dispatch error is final
    for the task that raised it.
    """

    def __init__(
        self,
        message: str,
        task_id: Optional[str] = None,
        participant_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize dispatch error.

        Args:
            message: Error message.
            task_id: Identifier of the failed task.
            participant_id: Participant whose session failed.
            details: Additional error details.
        """
        super().__init__(message, details)
        self.task_id = task_id
        self.participant_id = participant_id


class DispatchTimeoutError(DispatchError):
    """Raised when a dispatched session exceeds its step or time bound."""

    def __init__(
        self,
        message: str,
        task_id: Optional[str] = None,
        participant_id: Optional[str] = None,
        limit: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize dispatch timeout error.

        Args:
            message: Error message.
            task_id: Identifier of the failed task.
            participant_id: Participant whose session failed.
            limit: The step count or seconds that were exceeded.
            details: Additional error details.
        """
        super().__init__(message, task_id, participant_id, details)
        self.limit = limit


class MeetingStepLimitError(ConsensusAgoraError):
    """Raised when the moderator loop exceeds its configured step limit."""

    def __init__(self, message: str, step_limit: int, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.step_limit = step_limit
