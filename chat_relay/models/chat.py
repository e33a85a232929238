"""Pydantic models representing chat relay requests."""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MODEL = "deepseek-r1-distill-llama-70b"


class ChatMessage(BaseModel):
    """Single message item in a chat conversation."""

    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant", "system"] = Field(
        ..., description="Role of the author (system, user, assistant)"
    )
    content: str = Field(..., description="Text content of the message")


class ChatRequest(BaseModel):
    """Request payload accepted by ``POST /api/chat``."""

    messages: List[ChatMessage] = Field(
        ..., description="Conversation so far, oldest first; may be empty"
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        description="Model requested by the client; OpenAI falls back to gpt-3.5-turbo",
    )
    temperature: float = Field(
        default=0.7,
        allow_inf_nan=False,
        description="Sampling temperature forwarded to the provider",
    )
    max_tokens: int = Field(
        default=800,
        description="Limit for generated tokens forwarded to the provider",
    )
    provider: str = Field(
        default="auto",
        description="Preferred provider: auto, openai or groq",
    )
