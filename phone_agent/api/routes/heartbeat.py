"""
Heartbeat Routes
================

Trigger a single heartbeat check on demand (e.g. from cron).
"""

from typing import Optional

from fastapi import APIRouter, Depends

from phone_agent.agent.heartbeat import HeartbeatMonitor
from phone_agent.api.dependencies import get_heartbeat
from phone_agent.config import Settings, get_settings

router = APIRouter(prefix="/heartbeat", tags=["Heartbeat"])


@router.post("", summary="Run one heartbeat check")
async def run_heartbeat(
    settings: Settings = Depends(get_settings),
    monitor: HeartbeatMonitor = Depends(get_heartbeat),
) -> dict[str, Optional[str]]:
    """
    Check scheduled tasks and notifications with the model.

    Returns:
        The alert text, or null when all clear or skipped.
    """
    alert = await monitor.run_once(settings.llm.llm_api_key)
    return {"alert": alert}
