"""Health check endpoints."""

import logging

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from enx_api import __version__
from enx_api.config.env import get_directory_settings
from enx_api.supabase_client import get_supabase_api_key, get_supabase_secret_key, get_supabase_url

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]


def check_supabase_config() -> str:
    """Check that the Supabase URL and both keys are configured.

    Returns:
        str: "up" if configured, error message otherwise
    """
    try:
        get_supabase_url()
        get_supabase_api_key()
        get_supabase_secret_key()
        return "up"
    except RuntimeError as e:
        logger.error(f"Supabase configuration check failed: {e}")
        return f"down: {str(e)[:50]}"


def check_directory_settings() -> str:
    """Check that directory settings load and validate."""
    try:
        get_directory_settings()
        return "up"
    except Exception as e:
        logger.error(f"Directory settings check failed: {e}")
        return f"down: {str(e)[:50]}"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe; no dependency checks."""
    return HealthResponse(status="ok", version=__version__, services={"api": "up"})


@router.get("/readyz", response_model=HealthResponse)
async def readiness(response: Response) -> HealthResponse:
    """Readiness probe: configuration required to serve admin requests."""
    services = {
        "supabase": check_supabase_config(),
        "settings": check_directory_settings(),
    }

    if all(value == "up" for value in services.values()):
        return HealthResponse(status="ready", version=__version__, services=services)

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(status="not_ready", version=__version__, services=services)
