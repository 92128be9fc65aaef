"""Tests for configuration loading and validation."""

import pytest
from pydantic import ValidationError

from pulse_bot.config import AppConfig, LoggingConfig, QueueConfig, DEFAULT_SYSTEM_PROMPT


def test_queue_defaults_match_rate_limit_policy():
    config = QueueConfig()

    assert config.max_retries == 5
    assert config.initial_delay == 1.0
    assert config.max_delay == 60.0
    assert config.backoff_factor == 2.0
    assert config.pacing_interval == 0.2
    assert config.throttled_status_code == 429


def test_queue_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("QUEUE_MAX_RETRIES", "3")
    monkeypatch.setenv("QUEUE_PACING_INTERVAL", "0.5")

    config = QueueConfig()

    assert config.max_retries == 3
    assert config.pacing_interval == 0.5


def test_max_delay_below_initial_delay_is_rejected():
    with pytest.raises(ValidationError):
        QueueConfig(initial_delay=10.0, max_delay=1.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_retries": 0},
        {"initial_delay": 0},
        {"backoff_factor": 0.5},
        {"pacing_interval": -1},
        {"throttled_status_code": 200},
    ],
)
def test_invalid_queue_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        QueueConfig(**overrides)


def test_logging_level_is_normalized():
    assert LoggingConfig(level="debug").level == "DEBUG"

    with pytest.raises(ValidationError):
        LoggingConfig(level="verbose")
    with pytest.raises(ValidationError):
        LoggingConfig(format="xml")


def test_app_config_builds_sub_configs(monkeypatch):
    monkeypatch.setenv("LLM_MODEL_NAME", "gpt-4o-mini")
    monkeypatch.setenv("HEALTH_PORT", "8080")

    config = AppConfig()

    assert config.llm.model_name == "gpt-4o-mini"
    assert config.llm.system_prompt == DEFAULT_SYSTEM_PROMPT
    assert config.health.port == 8080
    assert config.queue.max_retries == 5
