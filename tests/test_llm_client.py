"""Tests for the LLM API client against an in-process fake API."""

import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pulse_bot.config import LLMConfig, QueueConfig
from pulse_bot.llm.client import LLMClient
from pulse_bot.llm.insights import InsightGenerator
from pulse_bot.llm.models import ChatMessage, MessageRole
from pulse_bot.queue import SequentialRetryQueue
from pulse_bot.utils.exceptions import ErrorClassification, LLMAPIError


class FakeCompletionsAPI:
    """Chat completions endpoint replaying a scripted list of responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append({
            "headers": dict(request.headers),
            "body": await request.json(),
        })
        status, body = self.responses.pop(0)
        text = body if isinstance(body, str) else json.dumps(body)
        return web.Response(status=status, text=text, content_type="application/json")

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/v1/chat/completions", self.handle)
        return app


def rate_limit_body():
    return {"error": {"message": "Rate limit reached for requests", "type": "requests", "code": "rate_limit_exceeded"}}


def make_client(server: TestServer, **overrides) -> LLMClient:
    settings = {
        "api_url": str(server.make_url("/v1/chat/completions")),
        "api_key": "sk-test",
        "model_name": "test-model",
        "max_tokens": 100,
        "temperature": 0.0,
        "timeout": 5,
    }
    settings.update(overrides)
    return LLMClient(LLMConfig(**settings))


async def test_completion_is_parsed(mock_llm_response):
    api = FakeCompletionsAPI([(200, mock_llm_response)])

    async with TestServer(api.app()) as server:
        async with make_client(server) as client:
            response = await client.generate_chat_completion(
                [ChatMessage(role=MessageRole.USER, content="Hello")]
            )

    assert response.content.startswith("Headline: Smart Pill Reminders")
    assert response.usage.total_tokens == 25
    request = api.requests[0]
    assert request["headers"]["Authorization"] == "Bearer sk-test"
    assert request["body"]["model"] == "test-model"
    assert request["body"]["messages"] == [{"role": "user", "content": "Hello"}]


async def test_complete_sends_system_prompt(mock_llm_response):
    api = FakeCompletionsAPI([(200, mock_llm_response)])

    async with TestServer(api.app()) as server:
        async with make_client(server, system_prompt="Be brief.") as client:
            content = await client.complete("Generate an idea")

    assert "Smart Pill Reminders" in content
    messages = api.requests[0]["body"]["messages"]
    assert messages[0] == {"role": "system", "content": "Be brief."}
    assert messages[1] == {"role": "user", "content": "Generate an idea"}


async def test_rate_limit_response_is_tagged_throttled():
    api = FakeCompletionsAPI([(429, rate_limit_body())])

    async with TestServer(api.app()) as server:
        async with make_client(server) as client:
            with pytest.raises(LLMAPIError) as excinfo:
                await client.complete("Hello")

    error = excinfo.value
    assert error.classification is ErrorClassification.THROTTLED
    assert error.status_code == 429
    assert error.message == "LLM API error: Rate Limited - Too many requests"
    assert error.context["error_message"] == "Rate limit reached for requests"


@pytest.mark.parametrize(
    "status, expected_type",
    [
        (401, "Unauthorized - Invalid API key"),
        (500, "Server Error - LLM service unavailable"),
        (418, "HTTP Error 418"),
    ],
)
async def test_other_error_responses_are_tagged_other(status, expected_type):
    api = FakeCompletionsAPI([(status, "not json")])

    async with TestServer(api.app()) as server:
        async with make_client(server) as client:
            with pytest.raises(LLMAPIError) as excinfo:
                await client.complete("Hello")

    error = excinfo.value
    assert error.classification is ErrorClassification.OTHER
    assert error.status_code == status
    assert error.message == f"LLM API error: {expected_type}"
    assert error.context["error_message"] == "not json"


async def test_malformed_success_body_raises():
    api = FakeCompletionsAPI([(200, {"unexpected": True})])

    async with TestServer(api.app()) as server:
        async with make_client(server) as client:
            with pytest.raises(LLMAPIError) as excinfo:
                await client.complete("Hello")

    assert excinfo.value.message == "Failed to parse LLM API response"
    assert not excinfo.value.is_throttled


async def test_unreachable_api_raises_llm_error():
    client = LLMClient(LLMConfig(api_url="http://127.0.0.1:1/v1/chat/completions", timeout=2))

    with pytest.raises(LLMAPIError) as excinfo:
        await client.complete("Hello")
    await client.close()

    assert excinfo.value.message == "Failed to communicate with LLM API"
    assert excinfo.value.classification is ErrorClassification.OTHER


async def test_closed_client_refuses_requests():
    client = LLMClient(LLMConfig())
    await client.close()

    with pytest.raises(LLMAPIError, match="has been closed"):
        await client.complete("Hello")


async def test_queue_retries_throttled_completions(mock_llm_response, sleeps):
    api = FakeCompletionsAPI([
        (429, rate_limit_body()),
        (429, rate_limit_body()),
        (200, mock_llm_response),
    ])
    queue = SequentialRetryQueue(
        QueueConfig(max_retries=3, initial_delay=0.1, max_delay=1.0, pacing_interval=0.0),
        sleep=sleeps,
    )

    async with TestServer(api.app()) as server:
        async with make_client(server) as client:
            insight = await InsightGenerator(client, queue).generate_insight("Health")

    assert insight.headline == "Smart Pill Reminders"
    assert len(api.requests) == 3
    assert sleeps.delays[:2] == [0.1, 0.2]
