"""Pure task domain logic - no I/O dependencies."""

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum

from .capabilities import Capability
from .errors import InvalidTransition, ValidationError


class Category(Enum):
    SECURITY = "security"
    COMPLIANCE = "compliance"
    LICENSES = "licenses"
    USERS = "users"
    ACCESS = "access"


class Priority(Enum):
    """Task urgency. Lower rank sorts first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


class Status(Enum):
    """Lifecycle state. Exactly one holds at any time."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


class Schedule(Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class Source(Enum):
    """Provenance of a task. Audit only."""

    MANUAL = "manual"
    RECOMMENDATION = "recommendation"
    PLAYBOOK = "playbook"
    SCHEDULED = "scheduled"


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

_STATUS_RANK = {
    Status.PENDING: 0,
    Status.IN_PROGRESS: 1,
    Status.COMPLETED: 2,
}

# Legal status changes and the capability each one needs.
TRANSITIONS: dict[tuple[Status, Status], Capability] = {
    (Status.PENDING, Status.IN_PROGRESS): Capability.EDIT_TASK,
    (Status.IN_PROGRESS, Status.PENDING): Capability.EDIT_TASK,
    (Status.PENDING, Status.COMPLETED): Capability.COMPLETE_TASK,
    (Status.IN_PROGRESS, Status.COMPLETED): Capability.COMPLETE_TASK,
    (Status.COMPLETED, Status.PENDING): Capability.COMPLETE_TASK,
}

# Capability checked when a status change targets the current status.
_NOOP_CAPABILITY = {
    Status.PENDING: Capability.EDIT_TASK,
    Status.IN_PROGRESS: Capability.EDIT_TASK,
    Status.COMPLETED: Capability.COMPLETE_TASK,
}

DEFAULT_DUE_DAYS = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 3,
    Priority.MEDIUM: 7,
    Priority.LOW: 14,
}


def parse_enum(enum_cls, value, field_name: str):
    """Coerce a raw value into a closed enum, rejecting anything else."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r} (expected one of: {allowed})")


def parse_date(value, field_name: str = "due date") -> date | None:
    """Accept a date, an ISO date/datetime string, or an empty value."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).split("T")[0])
    except ValueError:
        raise ValidationError(f"Invalid {field_name} {value!r} (expected YYYY-MM-DD)")


def parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid timestamp {value!r}")
    # Stored as naive local time so created_at values stay comparable
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def require_title(title) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required")
    return title


def required_capability(current: Status, target: Status) -> Capability:
    """Capability needed to move a task from current to target status."""
    if current == target:
        return _NOOP_CAPABILITY[target]
    try:
        return TRANSITIONS[(current, target)]
    except KeyError:
        raise InvalidTransition(current, target)


def default_due_date(priority: Priority, as_of: date | None = None) -> date:
    """Due date for tasks created from recommendations and playbooks."""
    as_of = as_of or date.today()
    return as_of + timedelta(days=DEFAULT_DUE_DAYS[priority])


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class Task:
    """A unit of trackable remediation work."""

    id: str
    title: str
    category: Category
    priority: Priority
    status: Status
    created_at: datetime
    created_by: str = "unknown"
    description: str = ""
    notes: str = ""
    due_date: date | None = None
    assignee: str = ""
    schedule: Schedule = Schedule.NONE
    source: Source = Source.MANUAL
    completed_at: datetime | None = None
    completed_by: str | None = None
    updated_at: datetime | None = None
    parent_task_id: str | None = None
    playbook_id: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == Status.COMPLETED

    @property
    def is_recurring(self) -> bool:
        return self.schedule != Schedule.NONE

    def is_overdue(self, as_of: date | None = None) -> bool:
        """Not completed and due before as_of."""
        if self.is_completed or not self.due_date:
            return False
        as_of = as_of or date.today()
        return self.due_date < as_of

    def days_until_due(self, as_of: date | None = None) -> int | None:
        """Days until due date (negative if overdue)."""
        if not self.due_date:
            return None
        as_of = as_of or date.today()
        return (self.due_date - as_of).days

    def with_status(self, status: Status, actor: str, now: datetime) -> "Task":
        """Copy of this task in a new status, with completion stamps maintained."""
        if status == Status.COMPLETED:
            return replace(self, status=status, completed_at=now, completed_by=actor, updated_at=now)
        return replace(self, status=status, completed_at=None, completed_by=None, updated_at=now)

    def to_record(self) -> dict:
        """Plain serializable form used for persistence."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "notes": self.notes,
            "category": self.category.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "assignee": self.assignee,
            "schedule": self.schedule.value,
            "source": self.source.value,
            "createdAt": self.created_at.isoformat(),
            "createdBy": self.created_by,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "completedBy": self.completed_by,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "parentTaskId": self.parent_task_id,
            "playbookId": self.playbook_id,
        }

    @classmethod
    def from_record(cls, data: dict) -> "Task":
        """Rebuild a Task from its persisted record. Raises ValidationError."""
        if not data.get("id"):
            raise ValidationError("Task record has no id")
        created_at = parse_timestamp(data.get("createdAt")) or datetime.fromtimestamp(0)
        return cls(
            id=data["id"],
            title=require_title(data.get("title")),
            category=parse_enum(Category, data.get("category"), "category"),
            priority=parse_enum(Priority, data.get("priority"), "priority"),
            status=parse_enum(Status, data.get("status", "pending"), "status"),
            created_at=created_at,
            created_by=data.get("createdBy") or "unknown",
            description=data.get("description") or "",
            notes=data.get("notes") or "",
            due_date=parse_date(data.get("dueDate")),
            assignee=data.get("assignee") or "",
            schedule=parse_enum(Schedule, data.get("schedule") or "none", "schedule"),
            source=parse_enum(Source, data.get("source") or "manual", "source"),
            completed_at=parse_timestamp(data.get("completedAt")),
            completed_by=data.get("completedBy"),
            updated_at=parse_timestamp(data.get("updatedAt")),
            parent_task_id=data.get("parentTaskId"),
            playbook_id=data.get("playbookId"),
        )


def filter_overdue(tasks: list[Task], as_of: date | None = None) -> list[Task]:
    """Filter to overdue tasks only."""
    as_of = as_of or date.today()
    return [t for t in tasks if t.is_overdue(as_of)]
