"""
Chat completions payloads and the parsed business insight.

Only the fields PulseBot sends or reads are modelled; unknown response
fields are ignored.
"""

import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator


HEADLINE_PATTERN = re.compile(r"Headline: (.+)")
IDEA_PATTERN = re.compile(r"Idea: (.+)")


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One message of a conversation. Content is stripped and must not be blank."""

    role: MessageRole
    content: str = Field(min_length=1, max_length=32000)

    @validator("content")
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be empty or whitespace only")
        return v.strip()

    class Config:
        use_enum_values = True


class ChatRequest(BaseModel):
    model: str
    messages: List[ChatMessage] = Field(min_length=1)
    max_tokens: Optional[int] = Field(default=None, gt=0, le=8192)
    temperature: Optional[float] = Field(default=0.7, ge=0.0, le=2.0)


class ChatChoice(BaseModel):
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatUsage(BaseModel):
    prompt_tokens: int = Field(ge=0)
    completion_tokens: int = Field(ge=0)
    total_tokens: int = Field(ge=0)


class ChatResponse(BaseModel):
    """A ``chat.completion`` object with at least one choice."""

    id: str
    object: str = Field(pattern=r"^chat\.completion$")
    created: int
    model: str
    choices: List[ChatChoice] = Field(min_length=1)
    usage: Optional[ChatUsage] = None

    @property
    def content(self) -> str:
        """Text of the first choice."""
        return self.choices[0].message.content


class LLMError(BaseModel):
    """``error`` object of an API error response."""

    type: Optional[str] = None
    code: Optional[str] = None
    message: str


class Insight(BaseModel):
    """
    A generated business idea for one topic.

    Attributes:
        topic: The topic the idea was generated for
        headline: Short headline (empty if the model omitted it)
        idea: One sentence idea (empty if the model omitted it)
    """

    topic: str
    headline: str = ""
    idea: str = ""


def parse_insight(topic: str, content: str) -> Insight:
    """
    Extract the headline and idea from a formatted completion.

    The model is asked to answer with ``Headline: ...`` and ``Idea: ...``
    lines. Missing lines produce empty fields rather than an error.

    Args:
        topic: Topic the completion was generated for
        content: Raw completion text

    Returns:
        Parsed insight
    """
    headline_match = HEADLINE_PATTERN.search(content)
    idea_match = IDEA_PATTERN.search(content)
    return Insight(
        topic=topic,
        headline=headline_match.group(1).strip() if headline_match else "",
        idea=idea_match.group(1).strip() if idea_match else "",
    )
