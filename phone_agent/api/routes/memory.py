"""
Memory Routes
=============

Endpoints for inspecting and managing conversation memory:
preferences, task history, transcript export, notification snapshots,
scheduled tasks, and a full wipe.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from phone_agent.api.dependencies import get_memory
from phone_agent.config import Settings, get_settings
from phone_agent.memory.store import MemoryStore
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/memory", tags=["Memory"])


class PreferenceValue(BaseModel):
    """Request body for setting a preference."""

    value: str = Field(max_length=1000)


class NotificationRequest(BaseModel):
    """A device notification to record."""

    app_name: str = Field(min_length=1, max_length=200)
    title: str = Field(default="", max_length=500)
    body: str = Field(default="", max_length=4000)


class ScheduledTaskRequest(BaseModel):
    """A recurring command for the heartbeat to consider."""

    command: str = Field(min_length=1, max_length=1000)
    cron_expression: str = Field(min_length=1, max_length=100)


@router.get("/preferences", summary="List preferences")
async def list_preferences(memory: MemoryStore = Depends(get_memory)) -> dict[str, str]:
    return memory.all_preferences()


@router.get("/preferences/{key}", summary="Get a preference")
async def get_preference(key: str, memory: MemoryStore = Depends(get_memory)) -> dict[str, str]:
    value = memory.get_preference(key)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Preference not found: {key}",
        )
    return {"key": key, "value": value}


@router.put("/preferences/{key}", summary="Set a preference")
async def set_preference(
    key: str,
    body: PreferenceValue,
    memory: MemoryStore = Depends(get_memory),
) -> dict[str, str]:
    memory.set_preference(key, body.value)
    logger.info("Preference set", key=key)
    return {"key": key, "value": body.value}


@router.get("/tasks", summary="Recent task records")
async def list_tasks(
    limit: int = Query(20, ge=1, le=100, description="Number of records to return"),
    memory: MemoryStore = Depends(get_memory),
) -> list[dict[str, Any]]:
    return [task.to_dict() for task in memory.recent_tasks(limit)]


@router.get("/tasks/{task_id}", summary="Get a task record")
async def get_task(task_id: int, memory: MemoryStore = Depends(get_memory)) -> dict[str, Any]:
    task = memory.get_task(task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task not found: {task_id}",
        )
    return task.to_dict()


@router.get("/export", response_class=PlainTextResponse, summary="Export conversation history")
async def export_history(
    memory: MemoryStore = Depends(get_memory),
    settings: Settings = Depends(get_settings),
) -> str:
    return memory.export_history(settings.memory.export_limit)


@router.post(
    "/notifications",
    status_code=status.HTTP_201_CREATED,
    summary="Record a notification",
)
async def record_notification(
    request: NotificationRequest,
    memory: MemoryStore = Depends(get_memory),
) -> dict[str, int]:
    notification_id = memory.record_notification(request.app_name, request.title, request.body)
    return {"id": notification_id}


@router.post(
    "/scheduled-tasks",
    status_code=status.HTTP_201_CREATED,
    summary="Add a scheduled task",
)
async def add_scheduled_task(
    request: ScheduledTaskRequest,
    memory: MemoryStore = Depends(get_memory),
) -> dict[str, int]:
    task_id = memory.add_scheduled_task(request.command, request.cron_expression)
    logger.info("Scheduled task added", id=task_id, cron=request.cron_expression)
    return {"id": task_id}


@router.delete("", summary="Wipe all memory")
async def clear_memory(memory: MemoryStore = Depends(get_memory)) -> dict[str, str]:
    """Irreversibly delete turns, tasks, notifications, preferences and scheduled tasks."""
    memory.clear_all()
    return {"message": "Memory cleared"}
