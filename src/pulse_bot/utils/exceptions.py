"""
Custom exceptions for PulseBot.

This module defines the exception hierarchy used throughout the application.
All exceptions inherit from PulseBotError so callers can catch every
bot-related error with a single except clause.

Errors raised by queued actions are tagged with an ErrorClassification so
the request queue can tell "the API throttled me, retry later" apart from
every other failure without knowing anything about the transport.
"""

from enum import Enum
from typing import Optional, Any, Dict


class ErrorClassification(str, Enum):
    """How the request queue should treat a failed action."""
    THROTTLED = "throttled"
    OTHER = "other"


class PulseBotError(Exception):
    """
    Base exception class for all PulseBot errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information about the error
        original_error: The original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            context: Additional context information
            original_error: The original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        error_str = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            error_str += f" (Context: {context_str})"
        if self.original_error:
            error_str += f" (Caused by: {self.original_error})"
        return error_str


class ConfigurationError(PulseBotError):
    """
    Raised when there's an error in configuration.

    This exception is raised when:
    - Required environment variables are missing
    - Configuration values are invalid
    - A startup dependency (e.g. the LLM API) cannot be reached
    """
    pass


class TaskError(PulseBotError):
    """
    Tagged error raised by a queued action.

    The classification is set by whoever raises the error, which keeps the
    queue independent from any particular HTTP library's error shape.

    Example:
        ```python
        if response.status == 429:
            raise TaskError(
                "Too many requests",
                classification=ErrorClassification.THROTTLED,
                status_code=429,
            )
        ```
    """

    def __init__(
        self,
        message: str,
        classification: ErrorClassification = ErrorClassification.OTHER,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, context=context, original_error=original_error)
        self.classification = ErrorClassification(classification)
        self.status_code = status_code

    @property
    def is_throttled(self) -> bool:
        return self.classification is ErrorClassification.THROTTLED

    @classmethod
    def from_status_code(
        cls,
        message: str,
        status_code: int,
        throttled_status_code: int = 429,
        context: Optional[Dict[str, Any]] = None,
    ) -> "TaskError":
        """Build an error tagged THROTTLED when the status matches the throttled code."""
        classification = (
            ErrorClassification.THROTTLED
            if status_code == throttled_status_code
            else ErrorClassification.OTHER
        )
        return cls(
            message,
            classification=classification,
            status_code=status_code,
            context=context,
        )


class LLMAPIError(TaskError):
    """
    Raised when there's an error communicating with the LLM API.

    This exception is raised when:
    - LLM API is unreachable
    - API returns an error response (429 responses are tagged THROTTLED)
    - Request times out
    - The response cannot be parsed
    """
    pass


class RetriesExhaustedError(PulseBotError):
    """
    Raised when an action keeps getting throttled past the retry limit.

    This is a synthetic terminal error, distinct from the throttling error
    itself (kept in ``original_error``). It tells the submitter to back off
    at a higher level; the queue never retries it.
    """

    classification = ErrorClassification.OTHER

    def __init__(
        self,
        attempts: int,
        original_error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            "Max retries reached for rate limit",
            context=context,
            original_error=original_error,
        )
        self.attempts = attempts


class QueueClosedError(PulseBotError):
    """Raised for submissions to, or work still pending in, a closed queue."""
    pass


def is_throttled(error: BaseException, throttled_status_code: int = 429) -> bool:
    """
    Decide whether an error means "the API throttled me, retry later".

    An explicit ``classification`` attribute always wins. Errors without one
    (for example third-party SDK exceptions) are throttled when their
    integer ``status_code`` equals the configured throttled code.

    Args:
        error: The exception raised by an action
        throttled_status_code: Status code that signals throttling

    Returns:
        True if the error should be retried with backoff
    """
    classification = getattr(error, "classification", None)
    if classification is not None:
        try:
            return ErrorClassification(classification) is ErrorClassification.THROTTLED
        except ValueError:
            return False

    status_code = getattr(error, "status_code", None)
    return isinstance(status_code, int) and status_code == throttled_status_code
