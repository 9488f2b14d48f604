"""
Agent Prompts
=============

Builders for the user-turn text sent to the model and the step messages
shown to the user.

The system instruction itself lives with the gateway; these functions
only produce the per-step user text.
"""

from typing import Optional

from phone_agent.llm.models import Decision
from phone_agent.memory.models import ScheduledTask

FIRST_STEP_INSTRUCTION = "Please analyze the screenshot and take the first action to complete this task."

HEARTBEAT_HEADER = "HEARTBEAT CHECK - No user action needed, just check if anything needs attention."

HEARTBEAT_INSTRUCTION = (
    "If any scheduled task needs to run now or any notification requires attention, "
    "say ALERT: followed by a brief description. Otherwise say ALL_CLEAR."
)


def format_preferences(preferences: dict[str, str]) -> str:
    """Render preferences as ``key=value`` pairs joined by ", "."""
    return ", ".join(f"{key}={value}" for key, value in preferences.items())


def build_context_message(
    command: str,
    preferences: dict[str, str],
    notifications_summary: str,
) -> str:
    """
    Build the first-step user message.

    Args:
        command: The user's task.
        preferences: Stored user preferences (line omitted when empty).
        notifications_summary: Recent-notifications text.

    Returns:
        Context preamble ending with the first-action instruction.
    """
    lines = [f"Task: {command}"]
    if preferences:
        lines.append(f"User preferences: {format_preferences(preferences)}")
    lines.append(notifications_summary)
    lines.append(FIRST_STEP_INSTRUCTION)
    return "\n".join(lines)


def build_continue_message(step: int, max_steps: int) -> str:
    """Build the user message for steps after the first."""
    return f"Continue with the task. Step {step} of {max_steps}."


def format_step_message(step: int, decision: Decision) -> str:
    """
    Render a decision for display.

    Example:
        **Step 2** — TAP
        📱 Screen: Home screen
        🎯 Target: Settings icon
        💡 Reason: Settings is visible
    """
    lines = [
        f"**Step {step}** — {decision.action.upper()}",
        f"📱 Screen: {decision.screen}",
        f"🎯 Target: {decision.target}",
        f"💡 Reason: {decision.reason}",
    ]
    if decision.text:
        lines.append(f'⌨️ Typing: "{decision.text}"')
    return "\n".join(lines)


def _format_last_run(task: ScheduledTask) -> str:
    return task.last_run.isoformat(timespec="seconds") if task.last_run else "never"


def build_heartbeat_prompt(
    notifications_summary: str,
    scheduled_tasks: list[ScheduledTask],
) -> str:
    """
    Build the heartbeat check prompt.

    Args:
        notifications_summary: Recent-notifications text.
        scheduled_tasks: Active scheduled tasks (section omitted when empty).
    """
    lines = [HEARTBEAT_HEADER, "", notifications_summary, ""]
    if scheduled_tasks:
        lines.append("Scheduled tasks to check:")
        for task in scheduled_tasks:
            lines.append(
                f"- {task.command} (cron: {task.cron_expression}, last run: {_format_last_run(task)})"
            )
    lines.append("")
    lines.append(HEARTBEAT_INSTRUCTION)
    return "\n".join(lines)


def extract_alert(content: str, limit: int = 200) -> Optional[str]:
    """
    Pull the alert text out of a heartbeat reply.

    Returns:
        Text after the first ``ALERT:`` marker (any case), trimmed and
        truncated to ``limit`` characters, or None for an all-clear reply.
    """
    index = content.lower().find("alert:")
    if index < 0:
        return None
    return content[index + len("alert:"):].strip()[:limit]
