"""
Agent Routes
============

Endpoints for running and cancelling agent tasks.

Provides:
- Task execution (single blocking request)
- Cancellation of the active run
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from phone_agent.agent.orchestrator import Orchestrator
from phone_agent.api.dependencies import RunRegistry, get_orchestrator, get_run_registry
from phone_agent.config import Settings, get_settings
from phone_agent.llm.models import RunOptions
from phone_agent.utils.logger import get_logger
from phone_agent.utils.security import validate_input_safe

logger = get_logger(__name__)

router = APIRouter(prefix="/agent", tags=["Agent"])


# Request/Response Models
class ExecuteTaskRequest(BaseModel):
    """Request to execute a task."""

    command: str = Field(
        description="Natural language task description",
        min_length=1,
        max_length=1000,
    )
    max_steps: Optional[int] = Field(
        default=None,
        ge=1,
        le=100,
        description="Maximum steps to attempt (server default if omitted)",
    )
    thinking_enabled: Optional[bool] = Field(
        default=None,
        description="Request a reasoning trace from the model",
    )


class TaskResultResponse(BaseModel):
    """Response containing task result."""

    success: bool
    result: str
    outcome: str
    task_id: Optional[int] = None
    steps_taken: int
    steps: list[dict[str, Any]] = []


@router.post(
    "/execute",
    response_model=TaskResultResponse,
    summary="Execute a task",
)
async def execute_task(
    request: ExecuteTaskRequest,
    settings: Settings = Depends(get_settings),
    orchestrator: Orchestrator = Depends(get_orchestrator),
    registry: RunRegistry = Depends(get_run_registry),
) -> TaskResultResponse:
    """
    Execute a task using the agent.

    Blocks until the run reaches a terminal outcome and returns every
    step update emitted along the way.

    Raises:
        HTTPException: 503 if no API key is configured, 409 if a run is active.
    """
    api_key = settings.llm.llm_api_key
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LLM API key not configured",
        )

    try:
        command = validate_input_safe(request.command)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        cancel_token = registry.start()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(
        "Executing task",
        task=command[:50] + "..." if len(command) > 50 else command,
    )

    thinking = request.thinking_enabled
    if thinking is None:
        thinking = settings.llm.llm_thinking_enabled

    try:
        summary = await orchestrator.run(
            command,
            api_key,
            max_steps=request.max_steps,
            options=RunOptions(thinking_enabled=thinking),
            cancel_token=cancel_token,
        )
    finally:
        registry.finish()

    return TaskResultResponse(
        success=summary.success,
        result=summary.result,
        outcome=summary.outcome.value,
        task_id=summary.task_id,
        steps_taken=summary.steps_taken,
        steps=[update.to_dict() for update in summary.updates],
    )


@router.post(
    "/cancel",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Cancel task execution",
)
async def cancel_task(
    registry: RunRegistry = Depends(get_run_registry),
) -> dict[str, str]:
    """
    Request cancellation of the active run.

    The run stops before its next step starts.

    Raises:
        HTTPException: If no run is active.
    """
    if not registry.cancel():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active task",
        )

    logger.info("Task cancellation requested")
    return {"message": "Task cancellation requested"}
