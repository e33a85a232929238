"""Configuration utilities for the chat relay service."""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com"
GROQ_BASE_URL = "https://api.groq.com/openai"
DEFAULT_CONFIG_FILE = "config.json"

_CONFIG_FILE_KEYS = ("GROQ_API_KEY", "OPENAI_API_KEY", "PORT")


class Settings(BaseModel):
    """Application settings, built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    groq_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)
    static_dir: Path = Path("public")
    request_timeout: float = Field(default=60.0, gt=0)
    openai_base_url: str = OPENAI_BASE_URL
    groq_base_url: str = GROQ_BASE_URL

    @field_validator("groq_api_key", "openai_api_key", mode="before")
    @classmethod
    def blank_as_missing(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("openai_base_url", "groq_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, env_file: str = ".env") -> "Settings":
        load_local_config(env_file)
        data: Dict[str, Any] = {
            "groq_api_key": os.getenv("GROQ_API_KEY"),
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "host": os.getenv("CHAT_RELAY_HOST", "0.0.0.0"),
            "port": os.getenv("PORT", "3001"),
            "static_dir": os.getenv("CHAT_RELAY_STATIC_DIR", "public"),
            "request_timeout": os.getenv("CHAT_RELAY_REQUEST_TIMEOUT", "60"),
            "openai_base_url": os.getenv("CHAT_RELAY_OPENAI_BASE_URL", OPENAI_BASE_URL),
            "groq_base_url": os.getenv("CHAT_RELAY_GROQ_BASE_URL", GROQ_BASE_URL),
        }
        return cls(**data)


def load_local_config(env_file: str = ".env") -> Optional[str]:
    """Populate the process environment from a local file.

    A ``.env`` file is preferred. When none is found, a JSON object file
    (``config.json`` or ``CHAT_RELAY_CONFIG_FILE``) is read instead. Variables
    already present in the environment are never overwritten. Returns the path
    of the file that was loaded, if any.
    """

    dotenv_path = Path(env_file)
    if dotenv_path.is_file():
        load_dotenv(dotenv_path, override=False)
        return str(dotenv_path)

    config_path = Path(os.getenv("CHAT_RELAY_CONFIG_FILE", DEFAULT_CONFIG_FILE))
    if not config_path.is_file():
        logger.info("No local configuration file found, using process environment")
        return None

    try:
        values = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to read configuration file %s", config_path)
        return None
    if not isinstance(values, dict):
        logger.warning("Ignoring configuration file %s: expected a JSON object", config_path)
        return None

    for key in _CONFIG_FILE_KEYS:
        value = values.get(key)
        if value is not None and key not in os.environ:
            os.environ[key] = str(value)
    logger.info("Loaded configuration from %s", config_path)
    return str(config_path)


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
