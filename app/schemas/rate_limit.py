"""Pydantic schemas for rate limit responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """Caller's position in the global rate limit window."""

    identifier_type: Literal["user", "ip"] = Field(
        ..., description="Whether the caller is keyed by authenticated subject or client IP."
    )
    limited: bool = Field(
        ..., description="True when the current window is exhausted."
    )
    remaining: int = Field(
        ..., ge=0, description="Requests left in the current window."
    )
    total: int = Field(
        ..., ge=1, description="Ceiling of the current window."
    )
    reset_at: int | None = Field(
        default=None,
        description="Epoch milliseconds when the window ends (null when no window is open).",
    )


class HealthResponse(BaseModel):
    status: str = Field("ok", description="Always 'ok' while the process is serving.")
