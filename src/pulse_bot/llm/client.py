"""
Client for an OpenAI-compatible chat completions endpoint.

Each call is exactly one HTTP request. The client never retries: a
throttling response is raised as LLMAPIError tagged THROTTLED so the
request queue can back off, and every other failure is tagged OTHER.
"""

import asyncio
import json
import time
from typing import Any, List, Optional

import aiohttp

from pulse_bot import __version__
from pulse_bot.config import LLMConfig
from pulse_bot.llm.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    LLMError,
    MessageRole,
)
from pulse_bot.utils.exceptions import ErrorClassification, LLMAPIError
from pulse_bot.utils.logging import (
    get_logger,
    log_llm_request,
    log_llm_response,
    new_request_id,
)


STATUS_DESCRIPTIONS = {
    400: "Bad Request - Invalid parameters",
    401: "Unauthorized - Invalid API key",
    403: "Forbidden - Access denied",
    404: "Not Found - Invalid endpoint",
    429: "Rate Limited - Too many requests",
}


def describe_status(status_code: int) -> str:
    """Human readable summary of an error status."""
    if status_code >= 500:
        return "Server Error - LLM service unavailable"
    return STATUS_DESCRIPTIONS.get(status_code, f"HTTP Error {status_code}")


def extract_error_message(body: str) -> str:
    """Pull the provider's error message out of an error response body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return body[:500] or "Unknown error"

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return LLMError(**error).message
    return str(error) if error else body


class LLMClient:
    """
    One-call-per-method client for the chat completions API.

    The aiohttp session is created lazily and shared by every call until
    ``close()``.

    Attributes:
        config: API location, model and sampling settings
        throttled_status_code: Status code reported as throttling
    """

    def __init__(self, config: LLMConfig, throttled_status_code: int = 429) -> None:
        self.config = config
        self.throttled_status_code = throttled_status_code
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise LLMAPIError("LLM client has been closed")

        if self.session is None or self.session.closed:
            headers = {"User-Agent": f"PulseBot/{__version__}"}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self.session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self.session

    async def generate_chat_completion(
        self,
        messages: List[ChatMessage],
        **overrides: Any,
    ) -> ChatResponse:
        """
        POST one chat completion request.

        Args:
            messages: Conversation to complete
            **overrides: ``max_tokens`` or ``temperature`` for this call only

        Returns:
            The parsed completion

        Raises:
            LLMAPIError: On any failure. A throttling response is tagged
                THROTTLED, everything else OTHER.
        """
        request_id = new_request_id()
        payload = ChatRequest(
            model=self.config.model_name,
            messages=messages,
            max_tokens=overrides.get("max_tokens", self.config.max_tokens),
            temperature=overrides.get("temperature", self.config.temperature),
        ).model_dump(exclude_none=True, mode="json")

        log_llm_request(self.config.api_url, request_id, self.config.model_name, len(messages))
        session = await self._ensure_session()
        started = time.monotonic()

        try:
            async with session.post(self.config.api_url, json=payload) as response:
                status = response.status
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            timed_out = isinstance(e, asyncio.TimeoutError)
            message = "LLM API request timed out" if timed_out else "Failed to communicate with LLM API"
            log_llm_response(request_id, 0, (time.monotonic() - started) * 1000, error=f"{message}: {e!r}")
            raise LLMAPIError(
                message,
                context={"api_url": self.config.api_url, "request_id": request_id},
                original_error=e,
            )

        elapsed_ms = (time.monotonic() - started) * 1000
        if status != 200:
            log_llm_response(request_id, status, elapsed_ms, error=f"HTTP {status}")
            raise self._error_for_status(status, body, request_id)

        try:
            completion = ChatResponse(**json.loads(body))
        except (ValueError, TypeError) as e:
            raise LLMAPIError(
                "Failed to parse LLM API response",
                status_code=status,
                context={"response_text": body[:500], "request_id": request_id},
                original_error=e,
            )

        usage = completion.usage
        log_llm_response(
            request_id,
            status,
            elapsed_ms,
            finish_reason=completion.choices[0].finish_reason,
            total_tokens=usage.total_tokens if usage else None,
        )
        return completion

    def _error_for_status(self, status_code: int, body: str, request_id: str) -> LLMAPIError:
        if status_code == self.throttled_status_code:
            classification = ErrorClassification.THROTTLED
        else:
            classification = ErrorClassification.OTHER

        return LLMAPIError(
            f"LLM API error: {describe_status(status_code)}",
            classification=classification,
            status_code=status_code,
            context={
                "status_code": status_code,
                "error_message": extract_error_message(body),
                "request_id": request_id,
            },
        )

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Send a single user prompt and return the generated text.

        Args:
            prompt: User prompt
            system_prompt: Overrides the configured system prompt

        Returns:
            Content of the first choice
        """
        messages = [
            ChatMessage(role=MessageRole.SYSTEM, content=system_prompt or self.config.system_prompt),
            ChatMessage(role=MessageRole.USER, content=prompt),
        ]
        response = await self.generate_chat_completion(messages)
        return response.content

    async def close(self) -> None:
        """Close the HTTP session. Later calls raise LLMAPIError."""
        if self._closed:
            return
        self._closed = True
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.logger.debug("LLM client closed")

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
