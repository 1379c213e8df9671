"""Task store - owns the task collection and its lifecycle.

Every mutator asks the capability oracle first, builds a new collection, saves
it through the persistence store and only then makes it visible. A failed save
leaves the in-memory state exactly as it was.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Iterable

from .adapters.file_audit_log import NullAuditLog
from .core.capabilities import Capability
from .core.errors import InvalidTransition, NotFound, PermissionDenied, PersistenceError, ValidationError
from .core.playbooks import Playbook
from .core.query import SortKey, SortOrder, TaskFilters, TaskStats, list_tasks, task_stats
from .core.recommendations import Recommendation, Snapshot, generate_recommendations
from .core.recurrence import next_occurrence
from .core.tasks import (
    TRANSITIONS,
    Category,
    Priority,
    Schedule,
    Source,
    Status,
    Task,
    default_due_date,
    new_task_id,
    parse_date,
    parse_enum,
    require_title,
    required_capability,
)
from .export import export_record
from .ports import AuditLog, CapabilityOracle, PersistenceStore

logger = logging.getLogger(__name__)

TASKS_KEY = "mitigation-tasks"

EDITABLE_FIELDS = {
    "title",
    "description",
    "notes",
    "category",
    "priority",
    "due_date",
    "assignee",
    "schedule",
}

BULK_CAPABILITIES = {
    Status.COMPLETED: Capability.COMPLETE_TASK,
    Status.IN_PROGRESS: Capability.EDIT_TASK,
}


@dataclass
class BulkResult:
    """Outcome of a bulk operation, ids in request order."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class TaskStore:
    """The remediation task collection and the operations allowed on it."""

    def __init__(
        self,
        oracle: CapabilityOracle,
        store: PersistenceStore,
        actor: str = "unknown",
        audit_log: AuditLog | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        key: str = TASKS_KEY,
    ):
        self.oracle = oracle
        self.store = store
        self.actor = actor
        self.audit_log = audit_log or NullAuditLog()
        self.key = key
        self._clock = clock or datetime.now
        self._new_id = id_factory or new_task_id
        self._tasks: list[Task] = self._load()
        self._recommendations: list[Recommendation] = []

    # ============== Collection access ==============

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def recommendations(self) -> list[Recommendation]:
        return list(self._recommendations)

    def get_task(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise NotFound("Task", task_id)

    def list_tasks(
        self,
        filters: TaskFilters | None = None,
        sort_by: SortKey | str = SortKey.PRIORITY,
        sort_order: SortOrder | str = SortOrder.ASC,
    ) -> list[Task]:
        return list_tasks(self._tasks, filters, sort_by, sort_order, as_of=self._today())

    def stats(self) -> TaskStats:
        return task_stats(self._tasks, as_of=self._today())

    def export_tasks(self) -> list[dict]:
        """Flat records for the exporting collaborator, in collection order."""
        self._require(Capability.EXPORT_DATA)
        return [export_record(t) for t in self._tasks]

    # ============== Creation & editing ==============

    def create_task(
        self,
        title: str,
        category: Category | str,
        priority: Priority | str,
        *,
        description: str = "",
        notes: str = "",
        due_date: date | str | None = None,
        assignee: str = "",
        schedule: Schedule | str = Schedule.NONE,
    ) -> Task:
        """Create a pending task from manual input."""
        self._require(Capability.CREATE_TASK)
        task = self._new_task(
            title=require_title(title),
            category=parse_enum(Category, category, "category"),
            priority=parse_enum(Priority, priority, "priority"),
            description=description or "",
            notes=notes or "",
            due_date=parse_date(due_date),
            assignee=(assignee or "").strip(),
            schedule=parse_enum(Schedule, schedule, "schedule"),
            source=Source.MANUAL,
        )
        self._commit(self._tasks + [task], "create_task", {"taskId": task.id, "title": task.title})
        return task

    def create_task_from_playbook(self, playbook: Playbook) -> Task:
        """Create a pending task seeded from a remediation playbook."""
        self._require(Capability.CREATE_TASK)
        task = self._new_task(
            title=playbook.title,
            category=playbook.category,
            priority=playbook.priority,
            description=playbook.task_description(),
            notes=playbook.task_notes(),
            due_date=default_due_date(playbook.priority, self._today()),
            source=Source.PLAYBOOK,
            playbook_id=playbook.id,
        )
        self._commit(
            self._tasks + [task],
            "create_task_from_playbook",
            {"taskId": task.id, "playbookId": playbook.id},
        )
        return task

    def edit_task(self, task_id: str, **changes) -> Task:
        """Change any fields except status and the creation/completion stamps."""
        self._require(Capability.EDIT_TASK)
        task = self.get_task(task_id)
        if "status" in changes:
            raise ValidationError("Status cannot be edited directly; use set_status")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        updated = replace(task, **self._normalize(changes), updated_at=self._clock())
        self._commit(
            self._replace(task, updated),
            "edit_task",
            {"taskId": task.id, "fields": sorted(changes)},
        )
        return updated

    def delete_task(self, task_id: str) -> None:
        """Remove a task permanently. Successors it spawned are kept."""
        self._require(Capability.DELETE_TASK)
        task = self.get_task(task_id)
        remaining = [t for t in self._tasks if t.id != task_id]
        self._commit(remaining, "delete_task", {"taskId": task.id, "title": task.title})

    # ============== Status transitions ==============

    def set_status(self, task_id: str, status: Status | str) -> Task:
        return self._transition(task_id, parse_enum(Status, status, "status"))

    def start(self, task_id: str) -> Task:
        return self._transition(task_id, Status.IN_PROGRESS, expected=(Status.PENDING,))

    def pause(self, task_id: str) -> Task:
        return self._transition(task_id, Status.PENDING, expected=(Status.IN_PROGRESS,))

    def complete(self, task_id: str) -> Task:
        return self._transition(task_id, Status.COMPLETED)

    def reopen(self, task_id: str) -> Task:
        return self._transition(task_id, Status.PENDING, expected=(Status.COMPLETED,))

    def _transition(self, task_id: str, target: Status, expected: tuple[Status, ...] = ()) -> Task:
        # The required capability depends on the current status, so look the
        # task up first; lookup has no side effects.
        task = self.get_task(task_id)
        if expected and task.status not in expected and task.status != target:
            raise InvalidTransition(task.status, target)
        self._require(required_capability(task.status, target))
        if task.status == target:
            return task

        now = self._clock()
        updated, successor = self._apply_status(task, target, now)
        tasks = self._replace(task, updated)
        details = {"taskId": task.id, "from": task.status.value, "to": target.value}
        if successor:
            tasks.append(successor)
            details["successorId"] = successor.id
        self._commit(tasks, "set_status", details)
        return updated

    def _apply_status(self, task: Task, target: Status, now: datetime) -> tuple[Task, Task | None]:
        """New version of task in target status, plus its successor if it recurs."""
        updated = task.with_status(target, self.actor, now)
        successor = None
        if target == Status.COMPLETED and task.is_recurring:
            successor = next_occurrence(updated, now.date(), self._new_id(), now, self.actor)
        return updated, successor

    # ============== Bulk operations ==============

    def bulk_set_status(self, task_ids: Iterable[str], status: Status | str) -> BulkResult:
        """
        Move every listed task to status under a single capability check.

        Missing ids, tasks already in the target status and tasks whose move
        is not a legal transition are skipped, never raised.
        """
        status = parse_enum(Status, status, "status")
        if status not in BULK_CAPABILITIES:
            raise ValidationError(f"Bulk status must be completed or in-progress, not {status.value}")
        self._require(BULK_CAPABILITIES[status])

        now = self._clock()
        tasks = list(self._tasks)
        index = {t.id: i for i, t in enumerate(tasks)}
        result = BulkResult()
        successors = []
        for task_id in _unique(task_ids):
            position = index.get(task_id)
            if position is None:
                result.skipped.append(task_id)
                continue
            task = tasks[position]
            if task.status == status or (task.status, status) not in TRANSITIONS:
                result.skipped.append(task_id)
                continue
            updated, successor = self._apply_status(task, status, now)
            tasks[position] = updated
            if successor:
                successors.append(successor)
            result.applied.append(task_id)

        if result.applied:
            self._commit(
                tasks + successors,
                "bulk_set_status",
                {"status": status.value, "applied": result.applied, "skipped": result.skipped},
            )
        return result

    def bulk_delete(self, task_ids: Iterable[str]) -> BulkResult:
        self._require(Capability.DELETE_TASK)
        present = {t.id for t in self._tasks}
        result = BulkResult()
        for task_id in _unique(task_ids):
            (result.applied if task_id in present else result.skipped).append(task_id)

        if result.applied:
            doomed = set(result.applied)
            self._commit(
                [t for t in self._tasks if t.id not in doomed],
                "bulk_delete",
                {"applied": result.applied, "skipped": result.skipped},
            )
        return result

    # ============== Recommendations ==============

    def refresh_recommendations(self, snapshot: Snapshot | None) -> list[Recommendation]:
        """Recompute recommendations, discarding earlier accepts and dismissals."""
        self._recommendations = generate_recommendations(snapshot)
        return self.recommendations

    def accept_recommendation(self, recommendation_id: str) -> Task:
        """Turn a recommendation into a pending task and drop it from the list."""
        self._require(Capability.ACCEPT_RECOMMENDATION)
        recommendation = self._find_recommendation(recommendation_id)
        task = self._new_task(
            title=recommendation.title,
            category=recommendation.category,
            priority=recommendation.priority,
            description=recommendation.description,
            notes="Created from recommendation",
            due_date=default_due_date(recommendation.priority, self._today()),
            source=Source.RECOMMENDATION,
            playbook_id=recommendation.playbook_id,
        )
        self._commit(
            self._tasks + [task],
            "accept_recommendation",
            {"taskId": task.id, "recommendationId": recommendation.id, "title": task.title},
        )
        self._recommendations = [r for r in self._recommendations if r.id != recommendation_id]
        return task

    def dismiss_recommendation(self, recommendation_id: str) -> Recommendation:
        """Hide a recommendation until the next refresh."""
        self._require(Capability.DISMISS_RECOMMENDATION)
        recommendation = self._find_recommendation(recommendation_id)
        self._recommendations = [r for r in self._recommendations if r.id != recommendation_id]
        self.audit_log.record("dismiss_recommendation", {"recommendationId": recommendation_id})
        logger.info(f"{self.actor} dismissed recommendation {recommendation_id}")
        return recommendation

    def _find_recommendation(self, recommendation_id: str) -> Recommendation:
        for recommendation in self._recommendations:
            if recommendation.id == recommendation_id:
                return recommendation
        raise NotFound("Recommendation", recommendation_id)

    # ============== Internals ==============

    def _today(self) -> date:
        return self._clock().date()

    def _require(self, capability: Capability) -> None:
        if not self.oracle.has_capability(capability):
            logger.warning(f"{self.actor} denied {capability.value}")
            raise PermissionDenied(capability)

    def _new_task(self, **fields) -> Task:
        return Task(
            id=self._new_id(),
            status=Status.PENDING,
            created_at=self._clock(),
            created_by=self.actor,
            **fields,
        )

    def _replace(self, old: Task, new: Task) -> list[Task]:
        return [new if t.id == old.id else t for t in self._tasks]

    def _normalize(self, changes: dict) -> dict:
        normalized = {}
        for name, value in changes.items():
            match name:
                case "title":
                    normalized[name] = require_title(value)
                case "category":
                    normalized[name] = parse_enum(Category, value, "category")
                case "priority":
                    normalized[name] = parse_enum(Priority, value, "priority")
                case "schedule":
                    normalized[name] = parse_enum(Schedule, value, "schedule")
                case "due_date":
                    normalized[name] = parse_date(value)
                case "assignee":
                    normalized[name] = (value or "").strip()
                case _:
                    normalized[name] = value or ""
        return normalized

    def _load(self) -> list[Task]:
        records = self.store.load(self.key) or []
        tasks = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning(f"Skipping malformed task record: {record!r}")
                continue
            try:
                tasks.append(Task.from_record(record))
            except ValidationError as e:
                logger.warning(f"Skipping task record {record.get('id')!r}: {e}")
        logger.debug(f"Loaded {len(tasks)} tasks from {self.key}")
        return tasks

    def _commit(self, tasks: list[Task], action: str, details: dict) -> None:
        """Persist the new collection, then make it the visible state."""
        try:
            self.store.save(self.key, [t.to_record() for t in tasks])
        except PersistenceError:
            logger.error(f"Failed to persist {action}; keeping previous state")
            raise
        except OSError as e:
            logger.error(f"Failed to persist {action}; keeping previous state")
            raise PersistenceError(str(e)) from e
        self._tasks = tasks
        self.audit_log.record(action, details)
        logger.info(f"{self.actor} {action}: {details}")


def _unique(ids: Iterable[str]) -> list[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))
