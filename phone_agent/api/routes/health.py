"""
Health Check Routes
===================

Endpoints for health monitoring and service status.

Includes:
- Basic health check
- Readiness probe
- Liveness probe
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from phone_agent import __version__
from phone_agent.api.dependencies import get_device
from phone_agent.config import Settings, get_settings
from phone_agent.device.adb_device import ADBDevice
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get(
    "",
    summary="Basic health check",
    response_description="Service health status",
)
async def health_check() -> dict[str, str]:
    """
    Basic health check endpoint.

    Returns:
        Simple status message indicating service is running.
    """
    return {"status": "healthy", "version": __version__, "timestamp": _now()}


@router.get(
    "/ready",
    summary="Readiness probe",
    response_description="Service readiness status",
)
async def readiness_check(
    settings: Settings = Depends(get_settings),
    device: ADBDevice = Depends(get_device),
) -> dict[str, Any]:
    """
    Readiness probe for container orchestration.

    Checks:
    - LLM API key configured
    - adb executable available

    Raises:
        HTTPException: If service is not ready.
    """
    checks = {
        "llm_configured": bool(settings.llm.llm_api_key),
        "adb_available": bool(device.adb_path),
    }

    if not all(checks.values()):
        logger.warning("Service not ready", checks=checks)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "not_ready",
                "checks": checks,
            },
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": _now(),
    }


@router.get(
    "/live",
    summary="Liveness probe",
    response_description="Service liveness status",
)
async def liveness_check() -> dict[str, str]:
    """
    Liveness probe for container orchestration.

    Returns:
        Simple alive status.
    """
    return {"status": "alive"}
