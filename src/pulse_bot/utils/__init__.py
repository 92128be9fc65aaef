"""Utility modules for PulseBot."""

from pulse_bot.utils.exceptions import (
    PulseBotError,
    ConfigurationError,
    ErrorClassification,
    TaskError,
    LLMAPIError,
    RetriesExhaustedError,
    QueueClosedError,
    is_throttled,
)
from pulse_bot.utils.logging import setup_logging

__all__ = [
    "PulseBotError",
    "ConfigurationError",
    "ErrorClassification",
    "TaskError",
    "LLMAPIError",
    "RetriesExhaustedError",
    "QueueClosedError",
    "is_throttled",
    "setup_logging",
]
