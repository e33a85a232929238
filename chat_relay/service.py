"""Relay logic shared by the HTTP server and the serverless functions."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .clients import ChatCompletionClient, OpenAIKeyChecker
from .config import Settings
from .errors import InvalidRequestError, MissingCredentialsError, MissingOpenAIKeyError
from .keys import check_keys, openai_key_type
from .models import ChatRequest, KeyTestResponse
from .normalizer import RelayResult, loads_json, normalize_response
from .routing import Provider, resolve_model, select_provider

logger = logging.getLogger(__name__)

KEY_VALID_MESSAGE = "API key is valid!"
KEY_ERROR_PREVIEW_CHARS = 500


def parse_chat_request(body: Union[bytes, str, None]) -> ChatRequest:
    """Decode and validate a ``POST /api/chat`` body.

    An empty body is treated as ``{}``. Raises :class:`InvalidRequestError`.
    """

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        data: Any = loads_json(body) if body else {}
    except ValueError as exc:
        raise InvalidRequestError("Invalid JSON body", detail=str(exc)) from exc

    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise InvalidRequestError("Invalid request: messages must be an array")

    try:
        return ChatRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError("Invalid request", detail=str(exc)) from exc


class ChatRelay:
    """Validate, route and forward chat requests to the chosen provider."""

    def __init__(
        self,
        settings: Settings,
        completion_client: Optional[ChatCompletionClient] = None,
        key_checker: Optional[OpenAIKeyChecker] = None,
    ) -> None:
        self._settings = settings
        self._completion_client = completion_client or ChatCompletionClient.from_settings(settings)
        self._key_checker = key_checker

    @property
    def settings(self) -> Settings:
        return self._settings

    def _api_key(self, provider: Provider) -> str:
        if provider is Provider.OPENAI:
            return self._settings.openai_api_key or ""
        return self._settings.groq_api_key or ""

    async def chat(self, body: Union[bytes, str, None]) -> RelayResult:
        keys = check_keys(self._settings.groq_api_key, self._settings.openai_api_key)
        if not keys.any:
            raise MissingCredentialsError(keys)

        request = parse_chat_request(body)
        provider = select_provider(
            request.provider,
            request.model,
            has_groq=keys.has_groq,
            has_openai=keys.has_openai,
        )
        model = resolve_model(provider, request.model)
        logger.info(
            "Relaying chat completion",
            extra={
                "provider": provider.value,
                "requested_model": request.model,
                "model": model,
                "message_count": len(request.messages),
            },
        )

        upstream = await self._completion_client.create_chat_completion(
            provider=provider,
            api_key=self._api_key(provider),
            model=model,
            messages=[message.model_dump() for message in request.messages],
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        return normalize_response(upstream)

    def _get_key_checker(self) -> OpenAIKeyChecker:
        if self._key_checker is None:
            self._key_checker = OpenAIKeyChecker(
                api_key=self._settings.openai_api_key or "",
                base_url=self._settings.openai_base_url,
                timeout=self._settings.request_timeout,
            )
        return self._key_checker

    async def test_key(self) -> RelayResult:
        """Check the OpenAI key against the models endpoint."""

        keys = check_keys(self._settings.groq_api_key, self._settings.openai_api_key)
        if not keys.has_openai:
            raise MissingOpenAIKeyError()

        upstream = await self._get_key_checker().check_key()
        result = KeyTestResponse(
            status=upstream.status_code,
            keyType=openai_key_type(self._settings.openai_api_key or ""),
            keyValid=upstream.ok,
            response=KEY_VALID_MESSAGE if upstream.ok else upstream.body_text[:KEY_ERROR_PREVIEW_CHARS],
        )
        if not upstream.ok:
            logger.warning("OpenAI rejected the configured key", extra={"status_code": upstream.status_code})
        payload: Dict[str, Any] = result.model_dump()
        return RelayResult(status_code=upstream.status_code, payload=payload)
