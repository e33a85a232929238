from __future__ import annotations

import os
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("OTEL_SDK_DISABLED", "true")
os.environ.pop("OTEL_EXPORTER_OTLP_ENDPOINT", None)

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chat_relay import main
from chat_relay.clients import UpstreamResponse
from chat_relay.config import Settings
from chat_relay.routing import Provider
from chat_relay.service import ChatRelay

GROQ_KEY = "gsk_test_groq_key"
OPENAI_KEY = "sk-test-openai-key"
SERVICE_ACCOUNT_KEY = "sk-svcacct-test-key"

COMPLETION_BODY = (
    '{"id": "chatcmpl-1", "object": "chat.completion", "model": "m", '
    '"choices": [{"index": 0, "message": {"role": "assistant", "content": "Hello there"}, '
    '"finish_reason": "stop"}], "usage": {"total_tokens": 12}}'
)


class DummyCompletionClient:
    def __init__(self, response: Optional[UpstreamResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or UpstreamResponse(status_code=200, body_text=COMPLETION_BODY)
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create_chat_completion(
        self,
        provider: Provider,
        api_key: str,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> UpstreamResponse:
        self.calls.append(
            {
                "provider": provider,
                "api_key": api_key,
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response


class DummyKeyChecker:
    def __init__(self, response: Optional[UpstreamResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response or UpstreamResponse(status_code=200, body_text='{"data": []}')
        self.error = error
        self.calls = 0

    async def check_key(self) -> UpstreamResponse:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {"static_dir": tmp_path}
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture()
def completion_client() -> DummyCompletionClient:
    return DummyCompletionClient()


@pytest.fixture()
def key_checker() -> DummyKeyChecker:
    return DummyKeyChecker()


@pytest.fixture()
def make_client(
    completion_client: DummyCompletionClient,
    key_checker: DummyKeyChecker,
) -> Generator[Callable[[Settings], TestClient], None, None]:
    clients: List[TestClient] = []

    def _make(settings: Settings) -> TestClient:
        app = main.create_app(settings)
        relay = ChatRelay(settings, completion_client=completion_client, key_checker=key_checker)  # type: ignore[arg-type]
        app.dependency_overrides[main.get_relay] = lambda: relay
        http_client = TestClient(app)
        clients.append(http_client)
        return http_client

    yield _make
    for http_client in clients:
        http_client.close()


@pytest.fixture()
def isolated_environ() -> Generator[None, None, None]:
    saved = dict(os.environ)
    try:
        yield
    finally:
        os.environ.clear()
        os.environ.update(saved)
