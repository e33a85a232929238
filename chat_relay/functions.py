"""Serverless entry points (Netlify / AWS Lambda proxy event shape).

Each handler receives an event with ``httpMethod``, ``headers``, ``body`` and
``isBase64Encoded`` and returns ``{"statusCode", "headers", "body"}``. Unlike
the long-running server, every response carries permissive CORS headers.
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
import uuid
from typing import Any, Dict, Optional

from .config import Settings
from .errors import RelayError, UpstreamTransportError
from .service import ChatRelay
from .telemetry import configure_logging, reset_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

_relay: Optional[ChatRelay] = None


def get_relay() -> ChatRelay:
    """Return the relay for this process, building it on cold start."""

    global _relay
    if _relay is None:
        configure_logging()
        _relay = ChatRelay(Settings.from_env())
    return _relay


def cors_headers(methods: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": methods,
        "Content-Type": "application/json",
    }


def _response(status_code: int, headers: Dict[str, str], payload: Any = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": "" if payload is None else json.dumps(payload),
    }


def _event_body(event: Dict[str, Any]) -> Optional[str]:
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        return base64.b64decode(body).decode("utf-8", errors="replace")
    return body


def _correlation_id(event: Dict[str, Any]) -> str:
    headers = {key.lower(): value for key, value in (event.get("headers") or {}).items()}
    return headers.get("x-correlation-id") or str(uuid.uuid4())


def chat_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    headers = cors_headers("POST, OPTIONS")
    method = event.get("httpMethod")
    if method == "OPTIONS":
        return _response(200, headers)
    if method != "POST":
        return _response(405, headers, {"error": "Method not allowed"})

    token = set_correlation_id(_correlation_id(event))
    try:
        result = asyncio.run(get_relay().chat(_event_body(event)))
    except UpstreamTransportError as exc:
        return _response(500, headers, {"error": "Internal server error", "detail": exc.detail})
    except RelayError as exc:
        return _response(exc.status_code, headers, exc.to_payload())
    except Exception as exc:
        logger.exception("Function error")
        return _response(500, headers, {"error": "Internal server error", "detail": str(exc)})
    finally:
        reset_correlation_id(token)

    return _response(result.status_code, headers, result.payload)


def test_key_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    headers = cors_headers("GET, OPTIONS")
    method = event.get("httpMethod")
    if method == "OPTIONS":
        return _response(200, headers)
    if method != "GET":
        return _response(405, headers, {"error": "Method not allowed"})

    token = set_correlation_id(_correlation_id(event))
    try:
        result = asyncio.run(get_relay().test_key())
    except UpstreamTransportError as exc:
        return _response(500, headers, {"error": "Test failed", "detail": exc.detail})
    except RelayError as exc:
        return _response(exc.status_code, headers, exc.to_payload())
    except Exception as exc:
        logger.exception("API key test failed")
        return _response(500, headers, {"error": "Test failed", "detail": str(exc)})
    finally:
        reset_correlation_id(token)

    # The key check itself succeeded, so the function answers 200 and
    # reports the upstream status in the payload.
    return _response(200, headers, result.payload)
