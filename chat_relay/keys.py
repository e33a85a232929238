"""Syntactic validation of the configured provider credentials."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .config import Settings

logger = logging.getLogger(__name__)

GROQ_KEY_PREFIX = "gsk_"
OPENAI_KEY_PREFIX = "sk-"
SERVICE_ACCOUNT_KEY_PREFIX = "sk-svcacct-"

GROQ_KEY_PLACEHOLDERS = frozenset(
    {"gsk_your_actual_api_key_here", "your_actual_groq_api_key_here"}
)

GROQ_KEYS_URL = "https://console.groq.com/keys"
OPENAI_KEYS_URL = "https://platform.openai.com/api-keys"

VALID = "Valid"
INVALID = "Not set or invalid"


@dataclass(frozen=True)
class KeyAvailability:
    """Which provider credentials are usable."""

    has_groq: bool
    has_openai: bool

    @property
    def any(self) -> bool:
        return self.has_groq or self.has_openai

    def status(self) -> Dict[str, str]:
        return {
            "groq": VALID if self.has_groq else INVALID,
            "openai": VALID if self.has_openai else INVALID,
        }


def is_valid_groq_key(key: Optional[str]) -> bool:
    return bool(key) and key not in GROQ_KEY_PLACEHOLDERS and key.startswith(GROQ_KEY_PREFIX)


def is_valid_openai_key(key: Optional[str]) -> bool:
    return bool(key) and key.startswith(OPENAI_KEY_PREFIX)


def check_keys(groq_api_key: Optional[str], openai_api_key: Optional[str]) -> KeyAvailability:
    """Return the availability of each provider key. No network access."""

    return KeyAvailability(
        has_groq=is_valid_groq_key(groq_api_key),
        has_openai=is_valid_openai_key(openai_api_key),
    )


def openai_key_type(key: str) -> str:
    return "Service Account" if key.startswith(SERVICE_ACCOUNT_KEY_PREFIX) else "Regular"


def describe_keys(settings: Settings) -> KeyAvailability:
    """Log which provider keys are configured and where to obtain missing ones."""

    keys = check_keys(settings.groq_api_key, settings.openai_api_key)

    if keys.has_openai:
        key_type = openai_key_type(settings.openai_api_key or "")
        logger.info("OpenAI API key configured (%s key)", key_type)
        if key_type == "Service Account":
            logger.warning("Service account keys may have different permissions")
    else:
        logger.warning("OpenAI API key not set (get from: %s)", OPENAI_KEYS_URL)

    if keys.has_groq:
        logger.info("Groq API key configured")
    else:
        logger.warning("Groq API key not set (get from: %s)", GROQ_KEYS_URL)

    if not keys.any:
        logger.warning(
            "No API keys configured! Set GROQ_API_KEY or OPENAI_API_KEY in the "
            "environment, a .env file or config.json"
        )
    return keys
