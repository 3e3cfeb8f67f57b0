"""Oracle wire schemas for the MAKER pipeline.

Defines the request/response envelope exchanged with the language-model
oracle. Every pipeline component talks to the oracle through these types
only; provider-specific payloads never leave the provider layer.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Role tag of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ResponseFormat(StrEnum):
    """Output format requested from the oracle."""

    TEXT = "text"
    JSON_OBJECT = "json_object"


class Message(BaseModel):
    """A single chat message sent to the oracle."""

    role: Role = Field(description="Who authored the message")
    content: str = Field(description="Message text")


class CompletionRequest(BaseModel):
    """One oracle invocation: ordered messages plus sampling parameters."""

    messages: list[Message] = Field(description="Ordered conversation messages")
    temperature: float = Field(
        default=0.1, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: int | None = Field(
        default=None, gt=0, description="Maximum output length in tokens (None = provider default)"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.TEXT,
        description="Whether the oracle should answer with a JSON object",
    )

    @classmethod
    def from_prompt(
        cls,
        prompt: str,
        *,
        temperature: float = 0.0,
        structured: bool = True,
    ) -> CompletionRequest:
        """Build a single-user-message request for a rendered prompt."""
        return cls(
            messages=[Message(role=Role.USER, content=prompt)],
            temperature=temperature,
            response_format=(
                ResponseFormat.JSON_OBJECT if structured else ResponseFormat.TEXT
            ),
        )


class TokenUsage(BaseModel):
    """Token consumption reported by the oracle for a single call."""

    prompt_tokens: int = Field(default=0, ge=0, description="Number of input tokens consumed")
    completion_tokens: int = Field(
        default=0, ge=0, description="Number of output tokens generated"
    )
    total_tokens: int = Field(default=0, ge=0, description="Input plus output tokens")


class CompletionResponse(BaseModel):
    """Oracle reply.

    ``content`` is the parsed payload: a dict when a JSON object was requested
    and could be extracted, otherwise the raw text.
    """

    content: str | dict[str, Any] = Field(description="Parsed content (text or JSON object)")
    raw: str = Field(default="", description="Raw text returned by the model")
    usage: TokenUsage | None = Field(default=None, description="Token usage, when reported")
