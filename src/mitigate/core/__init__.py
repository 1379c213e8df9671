"""Functional core - pure business logic with no I/O."""

from .capabilities import Capability
from .errors import (
    ActionFailed,
    InvalidTransition,
    MitigateError,
    NotFound,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from .tasks import Category, Priority, Schedule, Source, Status, Task, default_due_date
from .recommendations import Recommendation, Snapshot, generate_recommendations
from .recurrence import next_occurrence
from .query import SortKey, SortOrder, TaskFilters, TaskStats, list_tasks, task_stats
from .playbooks import Playbook
from .approvals import PendingAction, RemoteAction

__all__ = [
    # Capabilities & errors
    "Capability",
    "MitigateError",
    "PermissionDenied",
    "NotFound",
    "ValidationError",
    "InvalidTransition",
    "PersistenceError",
    "ActionFailed",
    # Tasks
    "Task",
    "Category",
    "Priority",
    "Status",
    "Schedule",
    "Source",
    "default_due_date",
    # Recommendations
    "Recommendation",
    "Snapshot",
    "generate_recommendations",
    # Recurrence
    "next_occurrence",
    # Query
    "TaskFilters",
    "SortKey",
    "SortOrder",
    "TaskStats",
    "list_tasks",
    "task_stats",
    # Playbooks
    "Playbook",
    # Approvals
    "PendingAction",
    "RemoteAction",
]
