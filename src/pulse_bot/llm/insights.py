"""
Business insight generation on top of the shared request queue.

InsightGenerator builds the prompts PulseBot sends to the LLM, submits each
call through the SequentialRetryQueue and turns completions into the
messages users receive. It performs no retries of its own; throttling is
handled once, by the queue.

Only ``test_connection`` is called from this package, at startup.
``generate_digest``, ``expand_topic`` and ``format_digest`` are the entry
points for the chat command handlers and the daily digest scheduler, which
sit in front of this library and are not part of it.
"""

from typing import List, Sequence

from pulse_bot.llm.client import LLMClient
from pulse_bot.llm.models import Insight, parse_insight
from pulse_bot.queue import SequentialRetryQueue
from pulse_bot.utils.exceptions import LLMAPIError, PulseBotError, RetriesExhaustedError
from pulse_bot.utils.logging import get_logger, timed_operation


FORMAT_INSTRUCTIONS = (
    "FORMAT YOUR RESPONSE EXACTLY LIKE THIS:\n"
    "Headline: [One short headline, max 6 words]\n"
    "Idea: [One sentence business idea, max 15 words]"
)

EXPAND_PROMPT = (
    "Create a simple business plan for {topic} with these points:\n"
    "1) Market Need (1-2 sentences)\n"
    "2) Solution (1-2 sentences)\n"
    "3) Target Users (1 sentence)\n"
    "4) Revenue Model (1 sentence)\n"
    "5) Next Steps (1-2 steps)"
)


def build_prompt(prompt: str, topics: Sequence[str] = ()) -> str:
    """Append the topic focus and the response format to a prompt."""
    topics_str = f"focused on {', '.join(topics)}" if topics else ""
    return f"{prompt} {topics_str}. {FORMAT_INSTRUCTIONS}"


def format_digest(insights: Sequence[Insight]) -> str:
    """
    Render insights as the Markdown digest message.

    Args:
        insights: Insights in the order they should appear

    Returns:
        Message text using Telegram-flavoured Markdown
    """
    sections = [
        f"📌 *{insight.topic}*\n"
        f"💡 *{insight.headline}*\n"
        f"{insight.idea}\n\n"
        f'Type "Expand {insight.topic}" for business plan'
        for insight in insights
    ]
    body = "\n\n".join(sections)
    return (
        f"🎯 *Quick Business Ideas*\n\n{body}\n\n"
        'Type "Expand [Topic]" for detailed plan'
    )


class InsightGenerator:
    """
    Generates business ideas and plans through the request queue.

    Attributes:
        client: LLM client performing the API calls
        queue: Shared request queue every call is submitted to
    """

    def __init__(self, client: LLMClient, queue: SequentialRetryQueue) -> None:
        self.client = client
        self.queue = queue
        self.logger = get_logger(__name__)

    async def generate_text(self, prompt: str, topics: Sequence[str] = ()) -> str:
        """
        Generate raw completion text for a prompt.

        Args:
            prompt: Base prompt
            topics: Topics the answer should focus on

        Returns:
            Completion text

        Raises:
            RetriesExhaustedError: If the API kept throttling the request
            LLMAPIError: For every other failure
        """
        full_prompt = build_prompt(prompt, topics)
        self.logger.debug("Submitting completion request", topics=list(topics))

        try:
            return await self.queue.run(lambda: self.client.complete(full_prompt))
        except RetriesExhaustedError:
            raise
        except PulseBotError as e:
            raise LLMAPIError(
                f"Failed to generate content: {e.context.get('error_message') or e.message}",
                context={"topics": list(topics)},
                original_error=e,
            )
        except Exception as e:
            raise LLMAPIError(
                f"Failed to generate content: {e}",
                context={"topics": list(topics)},
                original_error=e,
            )

    async def generate_insight(self, topic: str) -> Insight:
        """Generate and parse one business idea for a topic."""
        content = await self.generate_text(
            f"Generate a quick business idea for {topic}", [topic]
        )
        return parse_insight(topic, content)

    async def generate_digest(self, topics: Sequence[str]) -> List[Insight]:
        """
        Generate one insight per topic, preserving topic order.

        Args:
            topics: The user's topics

        Returns:
            List of insights
        """
        with timed_operation("generate_digest", topic_count=len(topics)):
            insights = []
            for topic in topics:
                insights.append(await self.generate_insight(topic))
            return insights

    async def expand_topic(self, topic: str) -> str:
        """Generate the five-point business plan for a topic."""
        return await self.generate_text(EXPAND_PROMPT.format(topic=topic), [topic])

    async def test_connection(self) -> bool:
        """
        Check that the LLM API answers through the queue.

        Returns:
            True if a completion was generated, False otherwise
        """
        self.logger.info("Testing LLM connection")
        try:
            await self.generate_text("Test connection")
        except PulseBotError as e:
            self.logger.error("LLM connection test failed", error_type=type(e).__name__, error=str(e))
            return False

        self.logger.info("LLM connection test successful")
        return True
