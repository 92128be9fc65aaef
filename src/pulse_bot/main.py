"""
Main entry point for PulseBot.

This module wires the application together: one request queue is built at
startup and handed to every component that talks to the LLM API. It also
handles configuration loading, logging setup and graceful shutdown.
"""

import asyncio
import signal
import sys
from typing import Optional

from pulse_bot import __version__
from pulse_bot.api.server import HealthServer
from pulse_bot.config import load_config, AppConfig
from pulse_bot.llm.client import LLMClient
from pulse_bot.llm.insights import InsightGenerator
from pulse_bot.queue import SequentialRetryQueue
from pulse_bot.utils.exceptions import ConfigurationError
from pulse_bot.utils.logging import setup_logging, get_logger

SHUTDOWN_TIMEOUT = 5.0


def log_environment(config: AppConfig) -> None:
    """Log which secrets are configured without revealing them."""
    logger = get_logger(__name__)
    logger.info("Environment check",
                llm_api_key="present" if config.llm.api_key else "missing",
                llm_api_url=config.llm.api_url,
                model=config.llm.model_name)


async def run_bot(config: AppConfig) -> None:
    """
    Run PulseBot until a shutdown signal arrives.

    Args:
        config: Application configuration

    Raises:
        ConfigurationError: If the LLM API cannot be reached at startup
    """
    logger = get_logger(__name__)
    shutdown_event = asyncio.Event()

    queue = SequentialRetryQueue(config.queue)
    client = LLMClient(config.llm, throttled_status_code=config.queue.throttled_status_code)
    generator = InsightGenerator(client, queue)
    health_server: Optional[HealthServer] = None
    if config.health.enabled:
        health_server = HealthServer(queue, config.health)

    def signal_handler(signum: int, frame) -> None:
        logger.info("Received shutdown signal", signal=signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if health_server:
            await health_server.start()

        if not await generator.test_connection():
            raise ConfigurationError(
                "LLM connection test failed",
                context={"api_url": config.llm.api_url},
            )

        logger.info("PulseBot started successfully")
        await shutdown_event.wait()

    finally:
        logger.info("Cleaning up bot resources")
        if health_server:
            await health_server.stop()
        try:
            await asyncio.wait_for(queue.join(), timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Request queue did not drain in time, abandoning pending tasks",
                           pending=queue.pending)
        await queue.close()
        await client.close()


async def main_async() -> None:
    """
    Async main function that handles the complete bot lifecycle.

    This function:
    1. Loads configuration
    2. Sets up logging
    3. Runs the bot
    4. Handles shutdown gracefully
    """
    try:
        config = load_config()

        setup_logging(config.logging)
        logger = get_logger(__name__)

        logger.info("PulseBot starting up",
                    version=__version__,
                    debug_mode=config.debug)
        log_environment(config)

        await run_bot(config)

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        get_logger(__name__).info("PulseBot shutdown complete")


def main() -> None:
    """
    Main entry point for PulseBot.

    Example:
        Command line usage:
        ```bash
        pulse-bot
        ```
    """
    try:
        if sys.version_info < (3, 11):
            print("Error: Python 3.11 or higher is required", file=sys.stderr)
            sys.exit(1)

        asyncio.run(main_async())

    except KeyboardInterrupt:
        print("\nBot shutdown requested", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
