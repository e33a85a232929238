from __future__ import annotations

import pytest

from chat_relay.errors import ProviderUnavailableError
from chat_relay.routing import Provider, is_openai_model, resolve_model, select_provider


@pytest.mark.parametrize(
    ("provider", "model", "has_groq", "has_openai", "expected"),
    [
        ("openai", "llama3-70b", True, True, Provider.OPENAI),
        ("openai", "gpt-4o", False, True, Provider.OPENAI),
        ("auto", "llama3-70b", False, True, Provider.OPENAI),
        ("auto", "gpt-4o", True, False, Provider.GROQ),
        ("auto", "llama3-70b", True, False, Provider.GROQ),
        # Both keys in auto mode favour Groq, even for OpenAI model names.
        ("auto", "gpt-4o", True, True, Provider.GROQ),
        ("groq", "gpt-4o", True, True, Provider.GROQ),
        ("other", "gpt-4o", True, True, Provider.OPENAI),
        ("other", "o1-mini", False, True, Provider.OPENAI),
        ("other", "gpt-4o", True, False, Provider.GROQ),
        ("other", "llama3-70b", True, True, Provider.GROQ),
    ],
)
def test_select_provider(provider: str, model: str, has_groq: bool, has_openai: bool, expected: Provider) -> None:
    assert select_provider(provider, model, has_groq=has_groq, has_openai=has_openai) is expected


@pytest.mark.parametrize(
    ("provider", "model", "has_groq", "has_openai"),
    [
        ("openai", "gpt-4o", True, False),
        ("groq", "llama3-70b", False, True),
        ("other", "llama3-70b", False, True),
        ("auto", "llama3-70b", False, False),
    ],
)
def test_select_provider_without_usable_key(provider: str, model: str, has_groq: bool, has_openai: bool) -> None:
    with pytest.raises(ProviderUnavailableError) as exc_info:
        select_provider(provider, model, has_groq=has_groq, has_openai=has_openai)

    assert exc_info.value.status_code == 500
    assert exc_info.value.to_payload() == {
        "error": "No valid API key available for the requested provider"
    }


def test_is_openai_model() -> None:
    assert is_openai_model("gpt-3.5-turbo")
    assert is_openai_model("o1-preview")
    assert not is_openai_model("deepseek-r1-distill-llama-70b")


def test_resolve_model() -> None:
    assert resolve_model(Provider.OPENAI, "gpt-4o") == "gpt-4o"
    assert resolve_model(Provider.OPENAI, "deepseek-r1-distill-llama-70b") == "gpt-3.5-turbo"
    assert resolve_model(Provider.GROQ, "gpt-4o") == "gpt-4o"
    assert resolve_model(Provider.GROQ, "llama3-70b") == "llama3-70b"
