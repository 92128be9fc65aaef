"""LLM integration modules for PulseBot."""

from pulse_bot.llm.client import LLMClient
from pulse_bot.llm.insights import InsightGenerator, format_digest
from pulse_bot.llm.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    Insight,
    LLMError,
    parse_insight,
)

__all__ = [
    "LLMClient",
    "InsightGenerator",
    "format_digest",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "Insight",
    "LLMError",
    "parse_insight",
]
