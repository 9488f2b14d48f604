"""
Agent Orchestrator
==================

Step loop that drives one task from command to terminal outcome.

Each step follows this cycle:
1. Observe: Capture a screenshot (a missing one means a text-only turn)
2. Think: Ask the model for the next decision
3. Record: Persist the raw reply and notify the observer
4. Act: Dispatch the action, then wait for the screen to settle

The loop ends when the model reports completion or failure, the gateway
fails, the user cancels, or the step budget runs out. Every run ends with
exactly one terminal task status and one final assistant turn.

Usage:
    from phone_agent.agent import Orchestrator, CancellationToken

    orchestrator = Orchestrator(memory, gateway, observation=device, automation=device)
    result = await orchestrator.execute(
        "Open settings and enable dark mode",
        api_key="nvapi-...",
        on_step_update=print_update,
        cancel_token=CancellationToken(),
    )
"""

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from phone_agent.agent.actions.handler import ActionRouter
from phone_agent.agent.prompts import (
    build_context_message,
    build_continue_message,
    format_step_message,
)
from phone_agent.device.providers import (
    AutomationProvider,
    NotificationSource,
    ObservationProvider,
    PreferenceSource,
)
from phone_agent.llm.errors import LLMError
from phone_agent.llm.gateway import ProtocolGateway
from phone_agent.llm.models import Decision, RunOptions
from phone_agent.memory.models import Role, TaskStatus
from phone_agent.memory.store import MemoryStore
from phone_agent.utils.logger import LogContext, get_logger

logger = get_logger(__name__)

SUCCESS_MARKER = "✅"
FAILURE_MARKER = "❌"
WARNING_MARKER = "⚠️"


class RunOutcome(str, Enum):
    """Terminal state of a run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    BUDGET_EXHAUSTED = "budget_exhausted"


class CancellationToken:
    """
    Cooperative cancellation flag shared between a run and its controller.

    The orchestrator samples it only at step boundaries; an in-flight model
    call or action is never interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class AgentConfig:
    """
    Configuration for the orchestrator.

    Attributes:
        max_steps: Default step budget per run.
        settle_delay: Seconds to wait after an action for the screen to update.
    """

    max_steps: int = 15
    settle_delay: float = 1.5

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError("max_steps must be positive")
        if self.settle_delay < 0:
            raise ValueError("settle_delay must not be negative")


@dataclass
class StepUpdate:
    """
    Per-step progress report delivered to the observer callback.

    Attributes:
        step_number: 1-based step index.
        max_steps: Step budget of the run.
        screen: Model's screen description.
        action: Action verb.
        target: Action target.
        reason: Model's reason, or the error diagnostic on failure.
        thinking: Reasoning trace.
        message: Rendered display text.
        is_complete: Step ended the run successfully.
        is_failed: Step ended the run with a failure.
    """

    step_number: int
    max_steps: int
    screen: str
    action: str
    target: str
    reason: str
    thinking: str
    message: str
    is_complete: bool = False
    is_failed: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "step_number": self.step_number,
            "max_steps": self.max_steps,
            "screen": self.screen,
            "action": self.action,
            "target": self.target,
            "reason": self.reason,
            "thinking": self.thinking,
            "message": self.message,
            "is_complete": self.is_complete,
            "is_failed": self.is_failed,
        }


@dataclass
class RunSummary:
    """
    Final result of one run.

    Attributes:
        result: Marker-prefixed result text.
        outcome: Terminal state.
        task_id: Persisted task record id, None if it could not be created.
        steps_taken: Steps started before the run ended.
        updates: Step updates emitted during the run.
    """

    result: str
    outcome: RunOutcome
    task_id: Optional[int] = None
    steps_taken: int = 0
    updates: list[StepUpdate] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result.startswith(SUCCESS_MARKER)


StepCallback = Callable[[StepUpdate], None]


class Orchestrator:
    """
    Sequential step loop for a single task.

    Not reentrant: one instance drives one run at a time.
    """

    def __init__(
        self,
        memory: MemoryStore,
        gateway: ProtocolGateway,
        observation: ObservationProvider,
        automation: AutomationProvider,
        config: Optional[AgentConfig] = None,
        preferences: Optional[PreferenceSource] = None,
        notifications: Optional[NotificationSource] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            memory: Conversation memory (task records and turns).
            gateway: Model gateway.
            observation: Screenshot source.
            automation: Capability executor.
            config: Step budget and settle delay.
            preferences: Preference source, defaults to memory.
            notifications: Notification source, defaults to memory.
        """
        self.memory = memory
        self.gateway = gateway
        self.observation = observation
        self.router = ActionRouter(automation)
        self.config = config or AgentConfig()
        self.preferences = preferences or memory
        self.notifications = notifications or memory
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def execute(
        self,
        command: str,
        api_key: str,
        max_steps: Optional[int] = None,
        options: Optional[RunOptions] = None,
        on_step_update: Optional[StepCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Run a task to completion.

        Returns:
            Marker-prefixed result text (also persisted to memory).
        """
        summary = await self.run(
            command,
            api_key,
            max_steps=max_steps,
            options=options,
            on_step_update=on_step_update,
            cancel_token=cancel_token,
        )
        return summary.result

    async def run(
        self,
        command: str,
        api_key: str,
        max_steps: Optional[int] = None,
        options: Optional[RunOptions] = None,
        on_step_update: Optional[StepCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunSummary:
        """
        Run a task and return the full summary.

        Args:
            command: Natural-language task.
            api_key: Bearer token for the model endpoint.
            max_steps: Step budget (config default if omitted).
            options: Per-call model options.
            on_step_update: Called synchronously after every step.
            cancel_token: Checked before each step starts.

        Returns:
            RunSummary with the result text, outcome and step updates.

        Raises:
            ValueError: If ``max_steps`` is given and not positive.
        """
        if max_steps is None:
            max_steps = self.config.max_steps
        elif max_steps < 1:
            raise ValueError("max_steps must be positive")
        options = options or RunOptions()
        cancel_token = cancel_token or CancellationToken()
        updates: list[StepUpdate] = []

        def emit(update: StepUpdate) -> None:
            updates.append(update)
            if on_step_update:
                on_step_update(update)

        self._running = True
        task_id: Optional[int] = None
        steps_taken = 0
        outcome = RunOutcome.FAILED
        result = ""

        logger.info("Starting task", command=command, max_steps=max_steps)

        try:
            task_id = self.memory.create_task(command)
            with LogContext(task_id=task_id):
                self.memory.append_turn(Role.USER.value, command)

                for step in range(1, max_steps + 1):
                    if cancel_token.is_cancelled:
                        outcome = RunOutcome.CANCELLED
                        result = f"{WARNING_MARKER} Task cancelled by user after {steps_taken} steps."
                        break

                    steps_taken = step
                    observation = await self.observation.capture_observation()
                    logger.debug("Step started", step=step, has_observation=observation is not None)

                    if step == 1:
                        message = build_context_message(
                            command,
                            self.preferences.all_preferences(),
                            self.notifications.recent_notifications_summary(),
                        )
                    else:
                        message = build_continue_message(step, max_steps)

                    try:
                        decision = await self.gateway.send_message(
                            message, observation, api_key, options
                        )
                    except LLMError as e:
                        error_msg = f"API error at step {step}: {e}"
                        logger.error("Gateway call failed", step=step, error=str(e))
                        emit(self._error_update(step, max_steps, error_msg))
                        outcome = RunOutcome.FAILED
                        result = f"{FAILURE_MARKER} {error_msg}"
                        break

                    self.memory.append_turn(Role.ASSISTANT.value, decision.raw_content)
                    emit(self._step_update(step, max_steps, decision))
                    logger.info("Step decided", step=step, action=decision.action, target=decision.target)

                    if decision.is_failure:
                        outcome = RunOutcome.FAILED
                        result = f"{FAILURE_MARKER} Task failed: {decision.reason}"
                        break

                    if decision.is_success:
                        outcome = RunOutcome.COMPLETED
                        result = f"{SUCCESS_MARKER} Task completed successfully.\n{decision.reason}"
                        break

                    await self.router.dispatch(decision)
                    await asyncio.sleep(self.config.settle_delay)
                else:
                    outcome = RunOutcome.BUDGET_EXHAUSTED
                    result = f"{WARNING_MARKER} Reached maximum steps ({max_steps}). Task may be incomplete."

        except Exception as e:
            logger.exception("Task execution error", error=str(e))
            outcome = RunOutcome.FAILED
            result = f"{FAILURE_MARKER} Error during task execution: {e}"
        except BaseException as e:
            # Task cancellation or interpreter exit; record the run, then propagate
            logger.warning("Task interrupted", step=steps_taken, error=type(e).__name__)
            outcome = RunOutcome.CANCELLED
            result = f"{WARNING_MARKER} Task interrupted after {steps_taken} steps."
            raise
        finally:
            self._running = False
            self._finalize(task_id, steps_taken, result)

        logger.info("Task finished", task_id=task_id, outcome=outcome.value, steps=steps_taken)

        return RunSummary(
            result=result,
            outcome=outcome,
            task_id=task_id,
            steps_taken=steps_taken,
            updates=updates,
        )

    def _finalize(self, task_id: Optional[int], steps_taken: int, result: str) -> None:
        """Persist the terminal task status and append the result turn."""
        if task_id is not None:
            status = TaskStatus.COMPLETED if result.startswith(SUCCESS_MARKER) else TaskStatus.FAILED
            try:
                self.memory.update_task(
                    task_id,
                    status=status,
                    steps_taken=steps_taken,
                    result=result,
                )
            except (KeyError, ValueError) as e:
                logger.error("Failed to update task status", task_id=task_id, error=str(e))

        self.memory.append_turn(Role.ASSISTANT.value, result)

    @staticmethod
    def _step_update(step: int, max_steps: int, decision: Decision) -> StepUpdate:
        return StepUpdate(
            step_number=step,
            max_steps=max_steps,
            screen=decision.screen,
            action=decision.action,
            target=decision.target,
            reason=decision.reason,
            thinking=decision.thinking,
            message=format_step_message(step, decision),
            is_complete=decision.is_success,
            is_failed=decision.is_failure,
        )

    @staticmethod
    def _error_update(step: int, max_steps: int, error_msg: str) -> StepUpdate:
        return StepUpdate(
            step_number=step,
            max_steps=max_steps,
            screen="Error",
            action="failed",
            target="",
            reason=error_msg,
            thinking="",
            message=error_msg,
            is_failed=True,
        )
