"""
Memory Module
=============

Conversation memory for the Phone Agent.

This package contains:
    - store: SQLite-backed memory store
    - models: Row data classes (turns, tasks, notifications, scheduled tasks)
"""

from phone_agent.memory.models import (
    ConversationTurn,
    NotificationRecord,
    Role,
    ScheduledTask,
    TaskRecord,
    TaskStatus,
)
from phone_agent.memory.store import MemoryStore

__all__ = [
    "MemoryStore",
    "ConversationTurn",
    "NotificationRecord",
    "Role",
    "ScheduledTask",
    "TaskRecord",
    "TaskStatus",
]
