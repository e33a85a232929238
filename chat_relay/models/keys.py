"""Pydantic models for key diagnostics."""
from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class KeyTestResponse(BaseModel):
    """Outcome of probing the OpenAI models endpoint with the configured key."""

    status: int = Field(..., description="HTTP status returned by OpenAI")
    keyType: str = Field(..., description="Service Account or Regular")
    keyValid: bool = Field(..., description="Whether OpenAI accepted the key")
    response: str = Field(
        ..., description="Confirmation text or the first 500 characters of the error body"
    )


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
    available_keys: Dict[str, str] = Field(
        ..., description="Per-provider key status (Valid or Not set or invalid)"
    )
