"""Rate limited request queue for outgoing LLM API calls."""

from pulse_bot.queue.models import Action, TaskEntry
from pulse_bot.queue.retry_queue import SequentialRetryQueue

__all__ = [
    "Action",
    "TaskEntry",
    "SequentialRetryQueue",
]
