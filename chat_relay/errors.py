"""Exceptions raised by the relay and rendered by the request handlers."""
from __future__ import annotations

from typing import Any, Dict, Optional

from .keys import GROQ_KEYS_URL, OPENAI_KEYS_URL, KeyAvailability


class RelayError(RuntimeError):
    """Base class for failures that map onto a JSON error response."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class MissingCredentialsError(RelayError):
    """Raised when neither provider has a usable key."""

    def __init__(self, keys: KeyAvailability) -> None:
        super().__init__(
            "No API key configured. Please set either GROQ_API_KEY or OPENAI_API_KEY."
        )
        self.keys = keys

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "instructions": (
                f"Get your API key from {GROQ_KEYS_URL} (for Groq) "
                f"or {OPENAI_KEYS_URL} (for OpenAI)"
            ),
            "available_keys": self.keys.status(),
        }


class ProviderUnavailableError(RelayError):
    """Raised when the selected provider has no usable key."""

    def __init__(self) -> None:
        super().__init__("No valid API key available for the requested provider")


class InvalidRequestError(RelayError):
    status_code = 400


class MissingOpenAIKeyError(RelayError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No OpenAI API key configured")


class UpstreamTransportError(RelayError):
    """Raised when the upstream provider cannot be reached."""
