"""Tests for the task store lifecycle."""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from mitigate.core.capabilities import Capability
from mitigate.core.errors import (
    InvalidTransition,
    NotFound,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from mitigate.core.playbooks import Playbook
from mitigate.core.query import TaskFilters
from mitigate.core.recommendations import Snapshot
from mitigate.core.tasks import Category, Priority, Schedule, Source, Status
from mitigate.task_store import TASKS_KEY, TaskStore

from conftest import MemoryStore


def stored_ids(memory_store):
    return [r["id"] for r in memory_store.data.get(TASKS_KEY, [])]


class TestLoad:
    def test_starts_empty(self, task_store):
        assert task_store.tasks == []

    def test_skips_invalid_records(self, make_store, clock):
        good = {
            "id": "ok",
            "title": "Keep me",
            "category": "users",
            "priority": "low",
            "status": "pending",
            "createdAt": "2025-01-01T09:00:00",
        }
        bad_status = dict(good, id="bad", status="blocked")
        store = MemoryStore({TASKS_KEY: [good, bad_status, "garbage"]})

        task_store = make_store(store=store)

        assert [t.id for t in task_store.tasks] == ["ok"]

    def test_tasks_property_is_a_copy(self, task_store):
        task_store.create_task("Enable MFA", "security", "high")
        task_store.tasks.clear()
        assert len(task_store.tasks) == 1


class TestCreateTask:
    def test_creates_pending_task(self, task_store, memory_store, clock):
        task = task_store.create_task(
            "  Enable MFA  ",
            "security",
            "high",
            description="Roll out to admins",
            due_date="2025-02-01",
            assignee=" dana ",
        )

        assert task.id == "t1"
        assert task.title == "Enable MFA"
        assert task.status == Status.PENDING
        assert task.source == Source.MANUAL
        assert task.created_by == "alice@example.com"
        assert task.created_at == clock.now
        assert task.due_date == date(2025, 2, 1)
        assert task.assignee == "dana"
        assert stored_ids(memory_store) == ["t1"]
        assert memory_store.saves == 1

    def test_rejects_blank_title(self, task_store, memory_store):
        with pytest.raises(ValidationError):
            task_store.create_task("   ", "security", "high")
        assert task_store.tasks == []
        assert memory_store.saves == 0

    @pytest.mark.parametrize(
        "category,priority,schedule",
        [("finance", "high", "none"), ("security", "urgent", "none"), ("security", "high", "yearly")],
    )
    def test_rejects_values_outside_closed_sets(self, task_store, category, priority, schedule):
        with pytest.raises(ValidationError):
            task_store.create_task("Task", category, priority, schedule=schedule)

    def test_rejects_bad_due_date(self, task_store):
        with pytest.raises(ValidationError):
            task_store.create_task("Task", "security", "high", due_date="soon")

    def test_requires_create_capability(self, make_store, memory_store):
        store = make_store(granted=[Capability.EDIT_TASK])
        with pytest.raises(PermissionDenied):
            store.create_task("Task", "security", "high")
        assert memory_store.saves == 0


class TestEditTask:
    def test_updates_fields(self, task_store, clock):
        task = task_store.create_task("Enable MFA", "security", "high")
        clock.now = clock.now + timedelta(hours=2)

        updated = task_store.edit_task(task.id, title="Enforce MFA", priority="critical", due_date="2025-01-20")

        assert updated.title == "Enforce MFA"
        assert updated.priority == Priority.CRITICAL
        assert updated.due_date == date(2025, 1, 20)
        assert updated.updated_at == clock.now
        assert updated.created_at == task.created_at
        assert task_store.get_task(task.id) == updated

    def test_clears_due_date(self, task_store):
        task = task_store.create_task("Task", "users", "low", due_date="2025-02-01")
        assert task_store.edit_task(task.id, due_date="").due_date is None

    def test_rejects_status_change(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        with pytest.raises(ValidationError):
            task_store.edit_task(task.id, status="completed")
        assert task_store.get_task(task.id).status == Status.PENDING

    def test_rejects_stamp_fields(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        with pytest.raises(ValidationError):
            task_store.edit_task(task.id, created_by="mallory")

    def test_unknown_task(self, task_store):
        with pytest.raises(NotFound):
            task_store.edit_task("missing", title="x")

    def test_requires_edit_capability(self, task_store, make_store, memory_store):
        task = task_store.create_task("Task", "users", "low")
        viewer = make_store(granted=[])
        with pytest.raises(PermissionDenied):
            viewer.edit_task(task.id, title="Changed")
        assert memory_store.data[TASKS_KEY][0]["title"] == "Task"


class TestDeleteTask:
    def test_removes_task(self, task_store, memory_store):
        first = task_store.create_task("One", "users", "low")
        second = task_store.create_task("Two", "users", "low")

        task_store.delete_task(first.id)

        assert [t.id for t in task_store.tasks] == [second.id]
        assert stored_ids(memory_store) == [second.id]

    def test_unknown_task(self, task_store):
        with pytest.raises(NotFound):
            task_store.delete_task("missing")

    def test_denied_leaves_everything_untouched(self, task_store, make_store, memory_store):
        task = task_store.create_task("One", "users", "low")
        before = list(memory_store.data[TASKS_KEY])
        saves = memory_store.saves

        limited = make_store(granted=[Capability.EDIT_TASK, Capability.COMPLETE_TASK])
        with pytest.raises(PermissionDenied):
            limited.delete_task(task.id)

        assert memory_store.data[TASKS_KEY] == before
        assert memory_store.saves == saves
        assert [t.id for t in limited.tasks] == [task.id]


class TestStatusTransitions:
    def test_start_and_pause(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        assert task_store.start(task.id).status == Status.IN_PROGRESS
        assert task_store.pause(task.id).status == Status.PENDING

    def test_complete_stamps_actor_and_time(self, task_store, clock):
        task = task_store.create_task("Task", "users", "low")
        done = task_store.complete(task.id)
        assert done.status == Status.COMPLETED
        assert done.completed_by == "alice@example.com"
        assert done.completed_at == clock.now

    def test_complete_from_in_progress(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        task_store.start(task.id)
        assert task_store.complete(task.id).is_completed

    def test_reopen_clears_completion(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        task_store.complete(task.id)
        reopened = task_store.reopen(task.id)
        assert reopened.status == Status.PENDING
        assert reopened.completed_at is None
        assert reopened.completed_by is None

    def test_completed_cannot_move_to_in_progress(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        task_store.complete(task.id)
        with pytest.raises(InvalidTransition):
            task_store.set_status(task.id, "in-progress")
        with pytest.raises(InvalidTransition):
            task_store.start(task.id)
        assert task_store.get_task(task.id).is_completed

    def test_reopen_requires_completed_task(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        task_store.start(task.id)
        with pytest.raises(InvalidTransition):
            task_store.reopen(task.id)

    def test_same_status_is_a_no_op(self, task_store, memory_store):
        task = task_store.create_task("Task", "users", "low")
        saves = memory_store.saves
        assert task_store.set_status(task.id, "pending") == task
        assert memory_store.saves == saves

    def test_rejects_unknown_status(self, task_store):
        task = task_store.create_task("Task", "users", "low")
        with pytest.raises(ValidationError):
            task_store.set_status(task.id, "blocked")

    def test_unknown_task(self, task_store):
        with pytest.raises(NotFound):
            task_store.complete("missing")

    def test_start_needs_edit_capability(self, task_store, make_store):
        task = task_store.create_task("Task", "users", "low")
        completer = make_store(granted=[Capability.COMPLETE_TASK])
        with pytest.raises(PermissionDenied):
            completer.start(task.id)

    def test_complete_needs_complete_capability(self, task_store, make_store):
        task = task_store.create_task("Task", "users", "low")
        editor = make_store(granted=[Capability.EDIT_TASK])
        with pytest.raises(PermissionDenied):
            editor.complete(task.id)
        assert editor.get_task(task.id).status == Status.PENDING


class TestRecurringTasks:
    def test_completing_weekly_task_schedules_successor(self, task_store, today):
        task = task_store.create_task("Review sign-ins", "security", "high", schedule="weekly", assignee="secops")

        task_store.complete(task.id)

        tasks = task_store.tasks
        assert len(tasks) == 2
        successor = tasks[1]
        assert successor.id == "t2"
        assert successor.status == Status.PENDING
        assert successor.source == Source.SCHEDULED
        assert successor.parent_task_id == task.id
        assert successor.due_date == today + timedelta(days=7)
        assert successor.assignee == "secops"
        assert successor.schedule == Schedule.WEEKLY

    def test_non_recurring_task_has_no_successor(self, task_store):
        task = task_store.create_task("One-off", "security", "high")
        task_store.complete(task.id)
        assert len(task_store.tasks) == 1

    def test_reopen_keeps_successor(self, task_store):
        task = task_store.create_task("Daily check", "security", "high", schedule="daily")
        task_store.complete(task.id)
        task_store.reopen(task.id)
        assert [t.id for t in task_store.tasks] == [task.id, "t2"]
        assert task_store.get_task(task.id).completed_at is None

    def test_deleting_parent_keeps_successor(self, task_store):
        task = task_store.create_task("Daily check", "security", "high", schedule="daily")
        task_store.complete(task.id)
        task_store.delete_task(task.id)
        assert [t.id for t in task_store.tasks] == ["t2"]


class TestPersistenceFailure:
    def test_failed_create_keeps_previous_state(self, task_store, memory_store):
        existing = task_store.create_task("Existing", "users", "low")
        memory_store.fail = True

        with pytest.raises(PersistenceError):
            task_store.create_task("New", "users", "low")

        assert [t.id for t in task_store.tasks] == [existing.id]

    def test_failed_completion_adds_no_successor(self, task_store, memory_store):
        task = task_store.create_task("Weekly", "users", "low", schedule="weekly")
        memory_store.fail = True

        with pytest.raises(PersistenceError):
            task_store.complete(task.id)

        assert [t.id for t in task_store.tasks] == [task.id]
        assert task_store.get_task(task.id).status == Status.PENDING

    def test_os_error_becomes_persistence_error(self, make_store):
        broken = MagicMock()
        broken.load.return_value = None
        broken.save.side_effect = OSError("disk full")
        task_store = make_store(store=broken)

        with pytest.raises(PersistenceError, match="disk full"):
            task_store.create_task("Task", "users", "low")
        assert task_store.tasks == []


class TestRecommendations:
    def test_refresh_generates_from_snapshot(self, task_store):
        recs = task_store.refresh_recommendations(Snapshot.from_dict({"security": {"mfaEnabled": 100, "riskyUsersCount": 2}}))
        assert [r.id for r in recs] == ["risky-users"]
        assert task_store.recommendations == recs

    def test_security_section_without_mfa_value_flags_mfa(self, task_store):
        recs = task_store.refresh_recommendations(Snapshot.from_dict({"security": {"riskyUsersCount": 2}}))
        assert [r.id for r in recs] == ["mfa-enrollment", "risky-users"]

    def test_accept_links_playbook(self, task_store):
        task_store.refresh_recommendations(Snapshot.from_dict({"users": {"inactive": 4}}))
        task = task_store.accept_recommendation("inactive-signins")
        assert task.playbook_id == "inactive-users"

    def test_accept_creates_task_due_next_day_for_critical(self, task_store, today, memory_store):
        task_store.refresh_recommendations(Snapshot.from_dict({"security": {"mfaEnabled": 100, "riskyUsersCount": 2}}))

        task = task_store.accept_recommendation("risky-users")

        assert task.source == Source.RECOMMENDATION
        assert task.priority == Priority.CRITICAL
        assert task.category == Category.SECURITY
        assert task.notes == "Created from recommendation"
        assert task.due_date == today + timedelta(days=1)
        assert task_store.recommendations == []
        assert stored_ids(memory_store) == [task.id]

    def test_accept_low_priority_due_in_two_weeks(self, task_store, today):
        task_store.refresh_recommendations(None)
        task = task_store.accept_recommendation("license-optimization")
        assert task.priority == Priority.LOW
        assert task.due_date == today + timedelta(days=14)

    def test_accept_unknown(self, task_store):
        task_store.refresh_recommendations(None)
        with pytest.raises(NotFound):
            task_store.accept_recommendation("nope")

    def test_accept_denied_keeps_recommendation(self, make_store):
        viewer = make_store(granted=[Capability.CREATE_TASK])
        viewer.refresh_recommendations(None)
        with pytest.raises(PermissionDenied):
            viewer.accept_recommendation("mfa-review")
        assert "mfa-review" in [r.id for r in viewer.recommendations]

    def test_failed_accept_keeps_recommendation(self, task_store, memory_store):
        task_store.refresh_recommendations(None)
        memory_store.fail = True
        with pytest.raises(PersistenceError):
            task_store.accept_recommendation("mfa-review")
        assert "mfa-review" in [r.id for r in task_store.recommendations]

    def test_dismiss_hides_without_saving(self, task_store, memory_store):
        task_store.refresh_recommendations(None)
        task_store.dismiss_recommendation("guest-audit")
        assert "guest-audit" not in [r.id for r in task_store.recommendations]
        assert memory_store.saves == 0
        assert task_store.tasks == []

    def test_refresh_brings_dismissed_back(self, task_store):
        task_store.refresh_recommendations(None)
        task_store.dismiss_recommendation("guest-audit")
        task_store.refresh_recommendations(None)
        assert "guest-audit" in [r.id for r in task_store.recommendations]

    def test_dismiss_requires_capability(self, make_store):
        store = make_store(granted=[Capability.ACCEPT_RECOMMENDATION])
        store.refresh_recommendations(None)
        with pytest.raises(PermissionDenied):
            store.dismiss_recommendation("guest-audit")


class TestPlaybookTasks:
    @pytest.fixture
    def playbook(self):
        return Playbook(
            id="enforce-mfa",
            title="Enforce MFA for admins",
            description="Require MFA for privileged roles.",
            category=Category.SECURITY,
            priority=Priority.HIGH,
            estimated_time="30 minutes",
            difficulty="Easy",
            steps=("Open Conditional Access", "Create policy"),
        )

    def test_creates_task_with_steps(self, task_store, playbook, today):
        task = task_store.create_task_from_playbook(playbook)

        assert task.title == "Enforce MFA for admins"
        assert task.source == Source.PLAYBOOK
        assert task.playbook_id == "enforce-mfa"
        assert task.due_date == today + timedelta(days=3)
        assert task.description.endswith("Steps:\n1. Open Conditional Access\n2. Create policy")
        assert "30 minutes" in task.notes

    def test_requires_create_capability(self, make_store, playbook):
        with pytest.raises(PermissionDenied):
            make_store(granted=[]).create_task_from_playbook(playbook)


class TestQueries:
    def test_list_tasks_uses_clock_for_overdue(self, task_store):
        task_store.create_task("Later", "users", "critical", due_date="2025-02-01")
        late = task_store.create_task("Late", "users", "low", due_date="2025-01-10")

        listed = task_store.list_tasks(sort_by="priority")

        assert listed[0].id == late.id

    def test_list_tasks_filters(self, task_store):
        task_store.create_task("MFA", "security", "high")
        task_store.create_task("Licenses", "licenses", "low")
        listed = task_store.list_tasks(TaskFilters(category="licenses"))
        assert [t.title for t in listed] == ["Licenses"]

    def test_get_task_unknown(self, task_store):
        with pytest.raises(NotFound):
            task_store.get_task("missing")

    def test_stats(self, task_store):
        first = task_store.create_task("One", "users", "low")
        task_store.create_task("Two", "users", "low")
        task_store.complete(first.id)
        stats = task_store.stats()
        assert (stats.total, stats.completed, stats.progress_percent) == (2, 1, 50)


class TestExport:
    def test_export_records(self, task_store):
        task_store.create_task("One", "users", "low", assignee="dana", due_date="2025-02-01")
        records = task_store.export_tasks()
        assert records[0]["Title"] == "One"
        assert records[0]["Assigned To"] == "dana"
        assert records[0]["Due Date"] == "2025-02-01"
        assert records[0]["Completed"] == ""

    def test_export_requires_capability(self, task_store, make_store):
        task_store.create_task("One", "users", "low")
        with pytest.raises(PermissionDenied):
            make_store(granted=[Capability.EDIT_TASK]).export_tasks()


class TestAuditLog:
    def test_mutations_are_recorded(self, make_store):
        audit_log = MagicMock()
        task_store = make_store(audit_log=audit_log)

        task = task_store.create_task("One", "users", "low")
        task_store.complete(task.id)

        actions = [c.args[0] for c in audit_log.record.call_args_list]
        assert actions == ["create_task", "set_status"]
        details = audit_log.record.call_args_list[1].args[1]
        assert details == {"taskId": task.id, "from": "pending", "to": "completed"}

    def test_successor_id_is_recorded(self, make_store):
        audit_log = MagicMock()
        task_store = make_store(audit_log=audit_log)
        task = task_store.create_task("Weekly", "users", "low", schedule="weekly")
        task_store.complete(task.id)
        assert audit_log.record.call_args.args[1]["successorId"] == "t2"

    def test_failed_save_is_not_recorded(self, make_store, memory_store):
        audit_log = MagicMock()
        task_store = make_store(audit_log=audit_log)
        memory_store.fail = True
        with pytest.raises(PersistenceError):
            task_store.create_task("One", "users", "low")
        audit_log.record.assert_not_called()


def test_default_clock_and_ids(memory_store):
    task_store = TaskStore(oracle=MagicMock(), store=memory_store)
    task = task_store.create_task("Task", "users", "low")
    assert task.id.startswith("task_")
    assert task.created_by == "unknown"
    assert isinstance(task.created_at, datetime)
