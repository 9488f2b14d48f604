"""
Tests for Memory Store
======================

Tests for:
- Conversation log ordering and windowing
- Preferences (last write wins)
- Task record lifecycle
- Notification summary and scheduled tasks
- Transcript export
- Full wipe and concurrent appends
"""

import threading

import pytest

from phone_agent.memory.models import TaskStatus
from phone_agent.memory.store import MemoryStore


class TestConversationLog:
    def test_recent_turns_oldest_first(self, memory):
        memory.append_turn("user", "open settings")
        memory.append_turn("assistant", "ACTION: tap")

        turns = memory.recent_turns(50)

        assert [t.role for t in turns] == ["user", "assistant"]
        assert [t.content for t in turns] == ["open settings", "ACTION: tap"]
        assert turns[0].id < turns[1].id
        assert turns[0].timestamp is not None

    def test_window_is_most_recent(self, memory):
        for i in range(60):
            memory.append_turn("user", f"turn {i}")

        turns = memory.recent_turns(50)

        assert len(turns) == 50
        assert turns[0].content == "turn 10"
        assert turns[-1].content == "turn 59"

    def test_session_id_kept(self, memory):
        memory.append_turn("user", "hi", session_id="run-1")
        assert memory.recent_turns(1)[0].session_id == "run-1"

    def test_to_message(self, memory):
        memory.append_turn("assistant", "done")
        assert memory.recent_turns(1)[0].to_message() == {"role": "assistant", "content": "done"}

    def test_in_memory_database(self):
        store = MemoryStore(":memory:")
        store.append_turn("user", "hello")
        assert store.count_turns() == 1
        store.close()


class TestPreferences:
    def test_last_write_wins(self, memory):
        memory.set_preference("language", "en")
        memory.set_preference("language", "fr")
        assert memory.get_preference("language") == "fr"
        assert memory.all_preferences() == {"language": "fr"}

    def test_missing_preference(self, memory):
        assert memory.get_preference("nope") is None
        assert memory.all_preferences() == {}


class TestTaskRecords:
    def test_create_is_running(self, memory):
        task_id = memory.create_task("Open Settings")
        task = memory.get_task(task_id)
        assert task.status == TaskStatus.RUNNING
        assert task.command == "Open Settings"
        assert task.steps_taken == 0
        assert task.result == ""

    def test_update(self, memory):
        task_id = memory.create_task("Open Settings")
        memory.update_task(task_id, status=TaskStatus.COMPLETED, steps_taken=3, result="✅ done")

        task = memory.get_task(task_id)
        assert task.status == TaskStatus.COMPLETED
        assert task.steps_taken == 3
        assert task.result == "✅ done"

    def test_update_unknown_task(self, memory):
        with pytest.raises(KeyError):
            memory.update_task(999, status=TaskStatus.FAILED, steps_taken=0, result="")

    def test_terminal_task_not_reopened(self, memory):
        task_id = memory.create_task("x")
        memory.update_task(task_id, status=TaskStatus.FAILED, steps_taken=1, result="❌")
        with pytest.raises(ValueError):
            memory.update_task(task_id, status=TaskStatus.COMPLETED, steps_taken=2, result="✅")
        assert memory.get_task(task_id).status == TaskStatus.FAILED

    def test_recent_tasks_newest_first(self, memory):
        first = memory.create_task("first")
        second = memory.create_task("second")
        assert [t.id for t in memory.recent_tasks()] == [second, first]

    def test_to_dict(self, memory):
        task_id = memory.create_task("x")
        data = memory.get_task(task_id).to_dict()
        assert data["status"] == "running"
        assert data["created_at"] is not None


class TestNotifications:
    def test_empty_summary(self, memory):
        assert memory.recent_notifications_summary() == "No recent notifications."

    def test_summary_lines(self, memory):
        memory.record_notification("WhatsApp", "Mom", "Call me")

        summary = memory.recent_notifications_summary()

        lines = summary.splitlines()
        assert lines[0] == "Recent Notifications:"
        assert lines[1].endswith("WhatsApp: Mom - Call me")
        assert lines[1].startswith("[")

    def test_limit(self, memory):
        for i in range(25):
            memory.record_notification("App", f"title {i}", "")

        notifications = memory.recent_notifications()

        assert len(notifications) == 20
        assert notifications[0].title == "title 24"


class TestScheduledTasks:
    def test_active(self, memory):
        memory.add_scheduled_task("Check email", "0 9 * * *")

        tasks = memory.active_scheduled_tasks()

        assert len(tasks) == 1
        assert tasks[0].command == "Check email"
        assert tasks[0].cron_expression == "0 9 * * *"
        assert tasks[0].last_run is None
        assert tasks[0].is_active


class TestExport:
    def test_format(self, memory):
        memory.append_turn("user", "open settings")
        memory.append_turn("assistant", "✅ Task completed successfully.")

        export = memory.export_history()

        lines = export.splitlines()
        assert lines[0] == "=== PhoneAgent Conversation Export ==="
        assert lines[1].startswith("Exported: ")
        assert "USER: open settings" in lines[3]
        assert lines[4] == "---"
        assert "ASSISTANT: ✅ Task completed successfully." in lines[5]
        assert lines[6] == "---"

    def test_limit(self, memory):
        for i in range(5):
            memory.append_turn("user", f"turn {i}")

        export = memory.export_history(limit=2)

        assert "turn 2" not in export
        assert "turn 3" in export
        assert export.index("turn 3") < export.index("turn 4")


class TestClearAll:
    def test_empties_every_store(self, memory):
        memory.append_turn("user", "hi")
        memory.set_preference("k", "v")
        memory.create_task("x")
        memory.record_notification("App", "t", "b")
        memory.add_scheduled_task("c", "* * * * *")

        memory.clear_all()

        assert memory.recent_turns(50) == []
        assert memory.all_preferences() == {}
        assert memory.recent_tasks() == []
        assert memory.recent_notifications() == []
        assert memory.active_scheduled_tasks() == []


class TestConcurrency:
    def test_parallel_appends(self, memory):
        def writer(name: str) -> None:
            for i in range(50):
                memory.append_turn("user", f"{name}-{i}")

        threads = [threading.Thread(target=writer, args=(f"w{n}",)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        turns = memory.recent_turns(1000)
        assert len(turns) == 200
        assert len({t.id for t in turns}) == 200
        # Each writer's own turns stay in order
        w0 = [t.content for t in turns if t.content.startswith("w0-")]
        assert w0 == [f"w0-{i}" for i in range(50)]
