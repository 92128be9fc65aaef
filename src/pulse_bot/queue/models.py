"""
Data models for the request queue.

A task entry pairs the caller's action with the future handed back from
``submit``. Entries are owned by the queue from submission until the
future is resolved.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pulse_bot.utils.logging import new_request_id


Action = Callable[[], Awaitable[Any]]
SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class TaskEntry:
    """
    A single unit of queued work.

    Attributes:
        action: Zero-argument coroutine function performing one API call
        future: Result handle returned to the submitter
        task_id: Short identifier used in log events
        submitted_at: Monotonic timestamp of submission
    """

    action: Action
    future: "asyncio.Future[Any]"
    task_id: str = field(default_factory=new_request_id)
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def waited_seconds(self) -> float:
        """Seconds spent since submission."""
        return time.monotonic() - self.submitted_at
