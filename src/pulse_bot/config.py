"""
Configuration management for PulseBot.

This module handles all configuration loading from environment variables,
validation, and provides typed configuration objects for use throughout
the application.

The configuration is loaded from environment variables and .env files,
with defaults matching the production rate limiting policy. Durations are
expressed in seconds.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


DEFAULT_SYSTEM_PROMPT = (
    "You are a concise business idea generator. Generate very short, clear ideas. "
    "Keep headlines under 6 words and ideas under 15 words."
)


class QueueConfig(BaseSettings):
    """Request queue retry and pacing settings."""

    max_retries: int = Field(
        default=5,
        ge=1,
        description="Maximum attempts per task while the API keeps throttling"
    )
    initial_delay: float = Field(
        default=1.0,
        gt=0,
        description="First backoff delay in seconds"
    )
    max_delay: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for a single backoff delay in seconds"
    )
    backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the delay after each throttled attempt"
    )
    pacing_interval: float = Field(
        default=0.2,
        ge=0,
        description="Pause in seconds between two consecutive tasks"
    )
    throttled_status_code: int = Field(
        default=429,
        ge=400,
        le=599,
        description="HTTP status code that signals throttling"
    )

    class Config:
        env_prefix = "QUEUE_"

    @validator("max_delay")
    def validate_max_delay(cls, v: float, values: dict) -> float:
        """Ensure the delay cap is not below the initial delay."""
        initial_delay = values.get("initial_delay")
        if initial_delay is not None and v < initial_delay:
            raise ValueError("max_delay must be greater than or equal to initial_delay")
        return v


class LLMConfig(BaseSettings):
    """LLM API configuration settings."""

    api_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Chat completions endpoint URL"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the LLM service"
    )
    model_name: str = Field(
        default="gpt-3.5-turbo",
        description="Name of the model to use"
    )
    max_tokens: int = Field(
        default=500,
        gt=0,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )
    timeout: int = Field(
        default=30,
        gt=0,
        description="Request timeout in seconds"
    )
    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="System prompt sent with every completion"
    )

    class Config:
        env_prefix = "LLM_"


class HealthConfig(BaseSettings):
    """Health check server settings."""

    enabled: bool = Field(
        default=True,
        description="Serve the /health and /status endpoints"
    )
    host: str = Field(
        default="0.0.0.0",
        description="Interface the health server binds to"
    )
    port: int = Field(
        default=3000,
        ge=0,
        le=65535,
        description="Port the health server listens on"
    )

    class Config:
        env_prefix = "HEALTH_"


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    format: str = Field(
        default="json",
        description="Log format: 'json' or 'text'"
    )

    class Config:
        env_prefix = "LOG_"

    @validator("level")
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @validator("format")
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class AppConfig(BaseSettings):
    """Main application configuration."""

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Sub-configurations
    queue: QueueConfig = Field(default_factory=QueueConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def load_config() -> AppConfig:
    """
    Load and validate application configuration.

    This function loads configuration from environment variables and .env files,
    validates all settings, and returns a fully configured AppConfig instance.

    Returns:
        AppConfig: Validated application configuration

    Raises:
        ValidationError: If configuration is invalid

    Example:
        ```python
        config = load_config()
        print(f"Queue retries up to {config.queue.max_retries} times")
        ```
    """
    # Sub-configs read os.environ, so the .env file has to be loaded first
    env_file = Path(".env")
    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)

    return AppConfig()
