"""Shared API schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

PROBLEM_TYPE_BASE = "https://enrichx.com/problems"


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors.

    ``error`` repeats the detail text for dashboard clients that read the
    legacy ``{"error": ...}`` body. Extension members (``stores``,
    ``failed_store``, ``succeeded_store``) are allowed as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="Opaque identifier of this occurrence")
    error: Optional[str] = Field(None, description="Legacy error message")


def problem_type(slug: str) -> str:
    """Problem type URI for a slug."""
    return f"{PROBLEM_TYPE_BASE}/{slug}"
