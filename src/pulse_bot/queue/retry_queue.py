"""
Sequential request queue with throttling-aware retries.

Every call against the rate limited LLM API goes through one
SequentialRetryQueue instance. The queue runs its backlog on a single
worker task, so at most one call is in flight at any time, and it retries
a call with exponential backoff only when the API reports throttling.
Each submitter gets an ``asyncio.Future`` that resolves exactly once.
"""

import asyncio
from collections import deque
from functools import partial
from typing import Any, Deque, Dict, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pulse_bot.config import QueueConfig
from pulse_bot.queue.models import Action, SleepFunc, TaskEntry
from pulse_bot.utils.exceptions import (
    QueueClosedError,
    RetriesExhaustedError,
    is_throttled,
)
from pulse_bot.utils.logging import get_logger, log_queue_event


async def _invoke(action: Action) -> Any:
    # tenacity only awaits callables it recognizes as coroutine functions,
    # and a lambda returning a coroutine is not one
    return await action()


class SequentialRetryQueue:
    """
    FIFO queue that executes submitted actions one at a time.

    Submissions may come from any number of coroutines on the same event
    loop. A drain cycle is started by the first submission into an idle
    queue and runs until the backlog is empty. Within a drain cycle:

    - the head entry is executed, retrying throttled failures with
      exponential backoff up to ``max_retries`` attempts;
    - any other failure resolves the entry's future immediately;
    - a fixed pacing interval is slept after every entry.

    Attributes:
        config: Retry and pacing settings

    Example:
        ```python
        queue = SequentialRetryQueue(QueueConfig())
        content = await queue.submit(lambda: client.complete("Hello"))
        ```
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        """
        Initialize the queue.

        Args:
            config: Retry and pacing settings (defaults when omitted)
            sleep: Coroutine function used for backoff and pacing delays
        """
        self.config = config or QueueConfig()
        self.logger = get_logger(__name__)
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._backlog: Deque[TaskEntry] = deque()
        self._processing = False
        self._closed = False
        self._current: Optional[TaskEntry] = None
        self._worker: Optional["asyncio.Task[None]"] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._stats: Dict[str, int] = {
            "submitted": 0,
            "succeeded": 0,
            "failed": 0,
            "throttled_retries": 0,
            "exhausted": 0,
        }

        self.logger.info(
            "Request queue initialized",
            max_retries=self.config.max_retries,
            initial_delay=self.config.initial_delay,
            max_delay=self.config.max_delay,
            backoff_factor=self.config.backoff_factor,
            pacing_interval=self.config.pacing_interval,
        )

    @property
    def pending(self) -> int:
        """Number of entries waiting in the backlog."""
        return len(self._backlog)

    @property
    def is_processing(self) -> bool:
        """Whether a drain cycle is currently active."""
        return self._processing

    @property
    def closed(self) -> bool:
        """Whether the queue has stopped accepting submissions."""
        return self._closed

    def submit(self, action: Action) -> "asyncio.Future[Any]":
        """
        Append an action to the backlog and return its result handle.

        This method never suspends. It must be called from a coroutine
        running on the event loop that owns the queue.

        Args:
            action: Zero-argument coroutine function performing one API call

        Returns:
            Future resolved with the action's value or its failure

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self._closed:
            raise QueueClosedError("Request queue is closed")

        loop = asyncio.get_running_loop()
        entry = TaskEntry(action=action, future=loop.create_future())
        self._backlog.append(entry)
        self._stats["submitted"] += 1

        log_queue_event(
            "submitted",
            entry.task_id,
            level="debug",
            pending=len(self._backlog),
            processing=self._processing,
        )

        # Check and set happen without an await in between
        if not self._processing:
            self._processing = True
            self._idle.clear()
            self._worker = loop.create_task(self._drain())

        return entry.future

    async def run(self, action: Action) -> Any:
        """Submit an action and wait for its outcome."""
        return await self.submit(action)

    async def join(self) -> None:
        """Wait until the backlog is empty and the worker is idle."""
        await self._idle.wait()

    async def close(self) -> None:
        """
        Stop the queue.

        New submissions are rejected, the worker is cancelled, and every
        future that has not been resolved yet fails with QueueClosedError.
        Call ``join()`` first to let outstanding work finish.
        """
        if self._closed:
            return

        self._closed = True
        worker = self._worker
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        abandoned = 0
        while self._backlog:
            entry = self._backlog.popleft()
            self._fail(entry, QueueClosedError(
                "Request queue closed before the task ran",
                context={"task_id": entry.task_id},
            ))
            abandoned += 1

        self._processing = False
        self._idle.set()
        self.logger.info("Request queue closed", abandoned=abandoned)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get current queue statistics.

        ``succeeded`` and ``failed`` count executed tasks by outcome, including
        tasks whose caller abandoned the future before it resolved.
        """
        return {
            "pending": len(self._backlog),
            "processing": self._processing,
            "closed": self._closed,
            "current_task": self._current.task_id if self._current else None,
            **self._stats,
        }

    async def _drain(self) -> None:
        """Execute backlog entries in order until the backlog is empty."""
        try:
            while self._backlog:
                entry = self._backlog.popleft()
                self._current = entry
                try:
                    await self._execute(entry)
                finally:
                    self._current = None
                await self._sleep(self.config.pacing_interval)
        finally:
            self._processing = False
            self._worker = None
            self._idle.set()

    async def _execute(self, entry: TaskEntry) -> None:
        """Run one entry under the retry policy and settle its future."""
        log_queue_event(
            "started",
            entry.task_id,
            level="debug",
            waited_seconds=round(entry.waited_seconds, 3),
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(
                multiplier=self.config.initial_delay,
                max=self.config.max_delay,
                exp_base=self.config.backoff_factor,
            ),
            retry=retry_if_exception(self._is_throttled),
            before_sleep=partial(self._before_retry, entry),
            sleep=self._sleep,
        )

        try:
            result = await retrying(_invoke, entry.action)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            self._stats["exhausted"] += 1
            log_queue_event(
                "retries_exhausted",
                entry.task_id,
                level="error",
                attempts=self.config.max_retries,
                error=str(last_error),
            )
            self._fail(entry, RetriesExhaustedError(
                attempts=self.config.max_retries,
                original_error=last_error,
                context={"task_id": entry.task_id},
            ))
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                self._fail(entry, QueueClosedError(
                    "Request queue closed while the task was running",
                    context={"task_id": entry.task_id},
                ))
                raise
            # The action cancelled itself; the worker keeps going
            self._stats["failed"] += 1
            log_queue_event("cancelled", entry.task_id, level="warning")
            if not entry.future.done():
                entry.future.cancel()
        except Exception as e:
            log_queue_event(
                "failed",
                entry.task_id,
                level="warning",
                error_type=type(e).__name__,
                error=str(e),
            )
            self._fail(entry, e)
        else:
            self._stats["succeeded"] += 1
            log_queue_event("completed", entry.task_id, level="debug")
            if entry.future.done():
                self.logger.debug("Discarding result of abandoned task", task_id=entry.task_id)
            else:
                entry.future.set_result(result)

    def _is_throttled(self, error: BaseException) -> bool:
        return is_throttled(error, self.config.throttled_status_code)

    def _before_retry(self, entry: TaskEntry, retry_state: RetryCallState) -> None:
        """Record a throttled attempt before the backoff sleep."""
        self._stats["throttled_retries"] += 1
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        log_queue_event(
            "throttled",
            entry.task_id,
            level="warning",
            attempt=retry_state.attempt_number,
            max_retries=self.config.max_retries,
            retry_in_seconds=delay,
        )

    def _fail(self, entry: TaskEntry, error: BaseException) -> None:
        if not isinstance(error, QueueClosedError):
            self._stats["failed"] += 1
        if entry.future.done():
            self.logger.debug("Discarding failure of abandoned task", task_id=entry.task_id)
            return
        entry.future.set_exception(error)
