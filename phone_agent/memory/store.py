"""
Conversation Memory Store
=========================

SQLite-backed memory shared by the agent loop and the heartbeat check.

Holds five sub-stores:
    - conversations: append-only log of user/assistant turns
    - tasks: one record per agent run
    - notifications_log: device notification snapshots
    - preferences: key/value user preferences (last write wins)
    - scheduled_tasks: recurring commands listed to the heartbeat

Every public method runs as a single transaction under a process-wide lock,
so a run and a heartbeat appending at the same time never interleave inside
one write.

Usage:
    from phone_agent.memory import MemoryStore

    memory = MemoryStore("phoneagent.db")
    memory.append_turn("user", "Open settings")
    history = memory.recent_turns(50)  # oldest first
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from phone_agent.device.providers import NotificationSource, PreferenceSource
from phone_agent.memory.models import (
    ConversationTurn,
    NotificationRecord,
    ScheduledTask,
    TaskRecord,
    TaskStatus,
)
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_EXPORT_LIMIT = 1000
NOTIFICATION_LIMIT = 20
TASK_LIMIT = 20

SCHEMA = """\
CREATE TABLE IF NOT EXISTS conversations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    session_id TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    command TEXT NOT NULL,
    status TEXT NOT NULL,
    steps_taken INTEGER NOT NULL DEFAULT 0,
    result TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    app_name TEXT NOT NULL,
    title TEXT NOT NULL,
    body TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    was_acted_on INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS scheduled_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    command TEXT NOT NULL,
    cron_expression TEXT NOT NULL,
    last_run TEXT,
    is_active INTEGER NOT NULL DEFAULT 1
);
"""

_ALL_TABLES = (
    "conversations",
    "tasks",
    "notifications_log",
    "preferences",
    "scheduled_tasks",
)


def _now() -> str:
    return datetime.now().isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class MemoryStore(NotificationSource, PreferenceSource):
    """
    Local conversation memory with keyed auxiliary state.

    Implements the preference and notification sources consumed by the
    orchestrator when it builds the first-step context message.
    """

    def __init__(self, db_path: str = "phoneagent.db") -> None:
        """
        Open (and create if needed) the memory database.

        Args:
            db_path: SQLite file path, or ':memory:' for a private in-memory store.
        """
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        logger.info("Memory store opened", db_path=db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one transaction under the store lock."""
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Conversation log
    # ------------------------------------------------------------------

    def append_turn(self, role: str, content: str, session_id: str = "") -> int:
        """
        Append one turn to the conversation log.

        Args:
            role: 'user' or 'assistant'.
            content: Message text.
            session_id: Optional tag grouping turns of one run.

        Returns:
            The new turn's sequence number.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO conversations (role, content, timestamp, session_id) "
                "VALUES (?, ?, ?, ?)",
                (role, content, _now(), session_id),
            )
            return cursor.lastrowid

    def recent_turns(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ConversationTurn]:
        """
        Get the most recent turns in insertion order (oldest first).

        Args:
            limit: Maximum number of turns to return.

        Returns:
            Up to ``limit`` turns, oldest first.
        """
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM conversations ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()

        return [
            ConversationTurn(
                id=row["id"],
                role=row["role"],
                content=row["content"],
                timestamp=_parse_ts(row["timestamp"]),
                session_id=row["session_id"],
            )
            for row in reversed(rows)
        ]

    def count_turns(self) -> int:
        """Count turns in the conversation log."""
        with self._transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM conversations").fetchone()[0]

    def export_history(self, limit: int = DEFAULT_EXPORT_LIMIT) -> str:
        """
        Render the conversation log as plain text.

        Args:
            limit: Maximum number of turns to include.

        Returns:
            Human-readable transcript, oldest turn first.
        """
        lines = [
            "=== PhoneAgent Conversation Export ===",
            f"Exported: {datetime.now().isoformat(timespec='seconds')}",
            "",
        ]
        for turn in self.recent_turns(limit):
            stamp = turn.timestamp.isoformat(timespec="seconds") if turn.timestamp else ""
            lines.append(f"[{stamp}] {turn.role.upper()}: {turn.content}")
            lines.append("---")
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def set_preference(self, key: str, value: str) -> None:
        """Insert or replace a preference."""
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO preferences (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def get_preference(self, key: str) -> Optional[str]:
        """Get a preference value, or None if unset."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT value FROM preferences WHERE key = ? LIMIT 1",
                (key,),
            ).fetchone()
        return row["value"] if row else None

    def all_preferences(self) -> dict[str, str]:
        """Get every preference as a key to value mapping."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT key, value FROM preferences ORDER BY key").fetchall()
        return {row["key"]: row["value"] for row in rows}

    # ------------------------------------------------------------------
    # Task records
    # ------------------------------------------------------------------

    def create_task(self, command: str) -> int:
        """
        Create a task record in the running state.

        Args:
            command: The user's command.

        Returns:
            The new task id.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO tasks (command, status, steps_taken, result, created_at) "
                "VALUES (?, ?, 0, '', ?)",
                (command, TaskStatus.RUNNING.value, _now()),
            )
            return cursor.lastrowid

    def update_task(
        self,
        task_id: int,
        *,
        status: TaskStatus,
        steps_taken: int,
        result: str,
    ) -> None:
        """
        Finalize a task record.

        Raises:
            KeyError: If the task does not exist.
            ValueError: If the task already reached a terminal status.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT status FROM tasks WHERE id = ?",
                (task_id,),
            ).fetchone()
            if row is None:
                raise KeyError(f"Task {task_id} does not exist")
            if TaskStatus(row["status"]).is_terminal:
                raise ValueError(f"Task {task_id} is already {row['status']}")

            conn.execute(
                "UPDATE tasks SET status = ?, steps_taken = ?, result = ? WHERE id = ?",
                (status.value, steps_taken, result, task_id),
            )

    def get_task(self, task_id: int) -> Optional[TaskRecord]:
        """Get one task record by id."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def recent_tasks(self, limit: int = TASK_LIMIT) -> list[TaskRecord]:
        """Get the most recent task records, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> TaskRecord:
        return TaskRecord(
            id=row["id"],
            command=row["command"],
            status=TaskStatus(row["status"]),
            steps_taken=row["steps_taken"],
            result=row["result"],
            created_at=_parse_ts(row["created_at"]),
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def record_notification(self, app_name: str, title: str, body: str) -> int:
        """Store a notification snapshot and return its id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO notifications_log (app_name, title, body, timestamp) "
                "VALUES (?, ?, ?, ?)",
                (app_name, title, body, _now()),
            )
            return cursor.lastrowid

    def recent_notifications(self, limit: int = NOTIFICATION_LIMIT) -> list[NotificationRecord]:
        """Get the most recent notifications, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications_log ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [
            NotificationRecord(
                id=row["id"],
                app_name=row["app_name"],
                title=row["title"],
                body=row["body"],
                timestamp=_parse_ts(row["timestamp"]),
                was_acted_on=bool(row["was_acted_on"]),
            )
            for row in rows
        ]

    def recent_notifications_summary(self) -> str:
        """
        Format recent notifications for prompt context.

        Returns:
            "No recent notifications." when empty, otherwise a header line
            followed by one line per notification.
        """
        notifications = self.recent_notifications()
        if not notifications:
            return "No recent notifications."

        lines = ["Recent Notifications:"]
        for n in notifications:
            stamp = n.timestamp.isoformat(timespec="seconds") if n.timestamp else ""
            lines.append(f"[{stamp}] {n.app_name}: {n.title} - {n.body}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Scheduled tasks
    # ------------------------------------------------------------------

    def add_scheduled_task(self, command: str, cron_expression: str) -> int:
        """Register an active scheduled task and return its id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO scheduled_tasks (command, cron_expression, last_run, is_active) "
                "VALUES (?, ?, NULL, 1)",
                (command, cron_expression),
            )
            return cursor.lastrowid

    def active_scheduled_tasks(self) -> list[ScheduledTask]:
        """Get all active scheduled tasks in creation order."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM scheduled_tasks WHERE is_active = 1 ORDER BY id",
            ).fetchall()
        return [
            ScheduledTask(
                id=row["id"],
                command=row["command"],
                cron_expression=row["cron_expression"],
                last_run=_parse_ts(row["last_run"]),
                is_active=bool(row["is_active"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Wipe
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """
        Irreversibly wipe every sub-store in one transaction.

        Either all five tables are emptied or, on error, none are.
        """
        with self._transaction() as conn:
            for table in _ALL_TABLES:
                conn.execute(f"DELETE FROM {table}")
        logger.warning("Memory store wiped", tables=list(_ALL_TABLES))
