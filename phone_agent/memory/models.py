"""
Memory Records
==============

Data classes for rows held by the conversation memory store.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Lifecycle status of a task record."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if the status can no longer change."""
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ConversationTurn:
    """
    One append-only entry in the conversation log.

    Attributes:
        id: Insertion sequence number (the only ordering key).
        role: 'user' or 'assistant'.
        content: Message text.
        timestamp: When the turn was appended.
        session_id: Free-form tag grouping turns of one run.
    """

    id: int
    role: str
    content: str
    timestamp: datetime
    session_id: str = ""

    def to_message(self) -> dict[str, str]:
        """Convert to a chat-completions message."""
        return {"role": self.role, "content": self.content}


@dataclass
class TaskRecord:
    """
    Persisted record of one agent run.

    Attributes:
        id: Row identifier.
        command: The user's natural-language command.
        status: Current task status.
        steps_taken: Steps executed before finalization.
        result: Final marker-prefixed result text.
        created_at: When the run started.
    """

    id: int
    command: str
    status: TaskStatus
    steps_taken: int = 0
    result: str = ""
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "command": self.command,
            "status": self.status.value,
            "steps_taken": self.steps_taken,
            "result": self.result,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class NotificationRecord:
    """A device notification snapshot folded into prompt context."""

    id: int
    app_name: str
    title: str
    body: str
    timestamp: datetime
    was_acted_on: bool = False


@dataclass
class ScheduledTask:
    """
    A recurring command checked by the heartbeat.

    Attributes:
        id: Row identifier.
        command: Command to run when due.
        cron_expression: Recurrence expression (opaque to the store).
        last_run: Last time the task ran, None if never.
        is_active: Only active tasks are listed to the heartbeat.
    """

    id: int
    command: str
    cron_expression: str
    last_run: datetime | None = None
    is_active: bool = True
