"""Provider selection rules."""
from __future__ import annotations

from enum import Enum

from .errors import ProviderUnavailableError

OPENAI_MODEL_MARKERS = ("gpt-", "o1-")
OPENAI_FALLBACK_MODEL = "gpt-3.5-turbo"


class Provider(str, Enum):
    OPENAI = "openai"
    GROQ = "groq"


def is_openai_model(model: str) -> bool:
    return any(marker in model for marker in OPENAI_MODEL_MARKERS)


def select_provider(provider: str, model: str, has_groq: bool, has_openai: bool) -> Provider:
    """Pick the upstream provider for a request.

    Rules are evaluated in order and the first match wins:

    1. ``provider == "openai"``: OpenAI, or an error without an OpenAI key.
    2. ``provider == "auto"`` with only an OpenAI key: OpenAI.
    3. ``provider == "groq"``, or ``"auto"`` with a Groq key: Groq.
    4. an OpenAI model name (``gpt-``/``o1-``): OpenAI when its key is usable.
    5. anything else: Groq.

    Steps 4 and 5 fall back to whichever key is usable and raise
    :class:`ProviderUnavailableError` when none is.
    """

    if provider == "openai":
        if not has_openai:
            raise ProviderUnavailableError()
        return Provider.OPENAI

    if provider == "auto" and has_openai and not has_groq:
        return Provider.OPENAI

    if provider == "groq" or (provider == "auto" and has_groq):
        if not has_groq:
            raise ProviderUnavailableError()
        return Provider.GROQ

    if is_openai_model(model) and has_openai:
        return Provider.OPENAI
    if has_groq:
        return Provider.GROQ
    raise ProviderUnavailableError()


def resolve_model(provider: Provider, model: str) -> str:
    """Return the model name to send upstream.

    OpenAI only receives OpenAI model names; anything else is replaced by
    :data:`OPENAI_FALLBACK_MODEL`. Groq models pass through unchanged.
    """

    if provider is Provider.OPENAI and not is_openai_model(model):
        return OPENAI_FALLBACK_MODEL
    return model
