"""Test configuration and utilities."""

import asyncio
from typing import List

import pytest

from pulse_bot.config import AppConfig, HealthConfig, LLMConfig, LoggingConfig, QueueConfig
from pulse_bot.queue import SequentialRetryQueue


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def test_config() -> AppConfig:
    """Create a test configuration."""
    config = AppConfig()

    config.queue = QueueConfig(
        max_retries=3,
        initial_delay=0.1,
        max_delay=1.0,
        backoff_factor=2.0,
        pacing_interval=0.0,
    )
    config.llm = LLMConfig(
        api_url="http://localhost:8000/v1/chat/completions",
        api_key="sk-test",
        model_name="test-model",
        max_tokens=100,
        temperature=0.0,
        timeout=5,
    )
    config.health = HealthConfig(host="127.0.0.1", port=0)
    config.logging = LoggingConfig(level="DEBUG", format="text")

    return config


@pytest.fixture
def sleeps() -> SleepRecorder:
    """Record backoff and pacing delays without waiting."""
    return SleepRecorder()


@pytest.fixture
def make_queue(sleeps):
    """Factory for queues that use the recording sleep."""

    def _make(**overrides) -> SequentialRetryQueue:
        settings = {
            "max_retries": 5,
            "initial_delay": 1.0,
            "max_delay": 60.0,
            "backoff_factor": 2.0,
            "pacing_interval": 0.2,
        }
        settings.update(overrides)
        return SequentialRetryQueue(QueueConfig(**settings), sleep=sleeps)

    return _make


@pytest.fixture
def mock_llm_response() -> dict:
    """Mock chat completion payload."""
    return {
        "id": "test-completion-123",
        "object": "chat.completion",
        "created": 1234567890,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": "Headline: Smart Pill Reminders\nIdea: An app that nudges seniors to take medication."
                },
                "finish_reason": "stop"
            }
        ],
        "usage": {
            "prompt_tokens": 10,
            "completion_tokens": 15,
            "total_tokens": 25
        }
    }
