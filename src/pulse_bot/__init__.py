"""
PulseBot - daily business ideas generated through a rate limited LLM API.

The heart of the package is the request queue: every call to the LLM API is
submitted to a single SequentialRetryQueue, which runs calls one at a time,
backs off exponentially while the API reports throttling, and hands each
outcome back to its caller through an asyncio future.

Example:
    Basic usage:

    ```python
    from pulse_bot.config import QueueConfig
    from pulse_bot.queue import SequentialRetryQueue

    queue = SequentialRetryQueue(QueueConfig())
    content = await queue.submit(lambda: client.complete("Hello"))
    ```
"""

__version__ = "0.1.0"


def main():
    """Main entry point for PulseBot."""
    from pulse_bot.main import main as _main
    return _main()


__all__ = ["main", "__version__"]
