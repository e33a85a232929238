"""Turn raw upstream responses into the payload returned to the client."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .clients import UpstreamResponse

logger = logging.getLogger(__name__)

INCORRECT_KEY_MARKER = "Incorrect API key"
TROUBLESHOOTING_HINT = (
    "\n\nTroubleshooting:\n"
    "- Verify your API key is correct\n"
    "- Check if it's a service account key (starts with sk-svcacct-)\n"
    "- Ensure the key has proper permissions\n"
    "- Try generating a new API key"
)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def loads_json(text: str) -> Any:
    """Decode JSON, rejecting the non-standard NaN and Infinity literals."""

    return json.loads(text, parse_constant=_reject_constant)


@dataclass(frozen=True)
class RelayResult:
    """Status code and JSON-serialisable payload to send back to the caller."""

    status_code: int
    payload: Any


def add_troubleshooting_hint(body: Any) -> bool:
    """Append the key troubleshooting hint to ``body['error']['message']``.

    Only applies when the message mentions an incorrect API key. Returns
    whether the body was changed.
    """

    if not isinstance(body, dict):
        return False
    error = body.get("error")
    if not isinstance(error, dict):
        return False
    message = error.get("message")
    if not isinstance(message, str) or INCORRECT_KEY_MARKER not in message:
        return False
    error["message"] = message + TROUBLESHOOTING_HINT
    return True


def normalize_response(upstream: UpstreamResponse) -> RelayResult:
    """Parse the upstream body, keeping the upstream status code.

    Bodies that are not JSON are wrapped as ``{"raw": body}``. This never
    raises.
    """

    try:
        body = loads_json(upstream.body_text)
    except ValueError:
        if not upstream.ok:
            logger.warning(
                "Upstream returned a non-JSON error body",
                extra={"status_code": upstream.status_code},
            )
        return RelayResult(status_code=upstream.status_code, payload={"raw": upstream.body_text})

    if not upstream.ok:
        logger.warning(
            "API Error: %s",
            upstream.body_text,
            extra={"status_code": upstream.status_code},
        )
        add_troubleshooting_hint(body)

    return RelayResult(status_code=upstream.status_code, payload=body)
