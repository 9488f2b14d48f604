"""
Agent Module
============

Step-loop agent for Android automation.

This package contains:
    - orchestrator: Step loop, cancellation token and run results
    - heartbeat: Periodic scheduled-task and notification check
    - prompts: User-turn and display message builders
    - actions/: Action router
"""

from phone_agent.agent.heartbeat import HeartbeatMonitor
from phone_agent.agent.orchestrator import (
    AgentConfig,
    CancellationToken,
    Orchestrator,
    RunOutcome,
    RunSummary,
    StepUpdate,
)
from phone_agent.agent.prompts import build_context_message, format_step_message

__all__ = [
    "Orchestrator",
    "AgentConfig",
    "CancellationToken",
    "RunOutcome",
    "RunSummary",
    "StepUpdate",
    "HeartbeatMonitor",
    "build_context_message",
    "format_step_message",
]
