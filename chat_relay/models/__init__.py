"""Pydantic schemas exchanged by the chat relay."""
from .chat import ChatMessage, ChatRequest
from .keys import HealthResponse, KeyTestResponse

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "HealthResponse",
    "KeyTestResponse",
]
