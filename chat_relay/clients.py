"""Wrappers around the upstream chat-completion providers."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable

import httpx
from openai import APIConnectionError, APIStatusError, OpenAI
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .config import GROQ_BASE_URL, OPENAI_BASE_URL, Settings
from .errors import UpstreamTransportError
from .routing import Provider
from .telemetry import get_correlation_id

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw status and body returned by a provider."""

    status_code: int
    body_text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ChatCompletionClient:
    """Async HTTP client forwarding chat completions to OpenAI or Groq."""

    def __init__(
        self,
        openai_base_url: str = OPENAI_BASE_URL,
        groq_base_url: str = GROQ_BASE_URL,
        timeout: float = 60.0,
    ) -> None:
        self._base_urls = {
            Provider.OPENAI: openai_base_url.rstrip("/"),
            Provider.GROQ: groq_base_url.rstrip("/"),
        }
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatCompletionClient":
        return cls(
            openai_base_url=settings.openai_base_url,
            groq_base_url=settings.groq_base_url,
            timeout=settings.request_timeout,
        )

    def endpoint(self, provider: Provider) -> str:
        return f"{self._base_urls[provider]}{CHAT_COMPLETIONS_PATH}"

    async def create_chat_completion(
        self,
        provider: Provider,
        api_key: str,
        model: str,
        messages: Iterable[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> UpstreamResponse:
        """POST a chat completion and return the upstream status and body untouched."""

        url = self.endpoint(provider)
        payload = {
            "model": model,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

        with tracer.start_as_current_span("Upstream.chatCompletion") as span:
            span.set_attribute("llm.system", provider.value)
            span.set_attribute("llm.operation", "chat.completion")
            span.set_attribute("llm.model", model)
            correlation_id = get_correlation_id()
            if correlation_id:
                span.set_attribute("correlation.id", correlation_id)

            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, content=json.dumps(payload), headers=headers)
            except httpx.HTTPError as exc:
                logger.exception("Upstream request failed: POST %s", url)
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                detail = str(exc) or type(exc).__name__
                raise UpstreamTransportError("Upstream request failed", detail=detail) from exc

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 400:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            else:
                span.set_status(Status(StatusCode.OK))

        logger.info(
            "API Response Status: %s",
            response.status_code,
            extra={"provider": provider.value, "model": model},
        )
        return UpstreamResponse(status_code=response.status_code, body_text=response.text)


class OpenAIKeyChecker:
    """Probe the OpenAI models endpoint to find out whether a key is accepted."""

    def __init__(self, api_key: str, base_url: str = OPENAI_BASE_URL, timeout: float = 60.0) -> None:
        self._client = OpenAI(
            api_key=api_key,
            base_url=f"{base_url.rstrip('/')}/v1",
            timeout=timeout,
            max_retries=0,
        )

    async def check_key(self) -> UpstreamResponse:
        def _call() -> UpstreamResponse:
            try:
                raw = self._client.models.with_raw_response.list()
            except APIStatusError as exc:
                return UpstreamResponse(status_code=exc.status_code, body_text=exc.response.text)
            except APIConnectionError as exc:
                logger.exception("OpenAI key check could not reach the API")
                raise UpstreamTransportError("Upstream request failed", detail=str(exc)) from exc
            http_response = raw.http_response
            return UpstreamResponse(status_code=http_response.status_code, body_text=http_response.text)

        with tracer.start_as_current_span("OpenAI.listModels") as span:
            span.set_attribute("llm.system", Provider.OPENAI.value)
            correlation_id = get_correlation_id()
            if correlation_id:
                span.set_attribute("correlation.id", correlation_id)
            try:
                result = await asyncio.to_thread(_call)
            except UpstreamTransportError as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                raise
            span.set_attribute("http.status_code", result.status_code)
            span.set_status(Status(StatusCode.OK if result.ok else StatusCode.ERROR))
            return result
