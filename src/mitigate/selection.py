"""Task selection for bulk actions."""

from enum import Enum
from typing import Iterable

from .core.tasks import Status, Task, parse_enum
from .task_store import BulkResult, TaskStore


class BulkAction(Enum):
    COMPLETE = "complete"
    IN_PROGRESS = "in-progress"
    DELETE = "delete"


class TaskSelection:
    """Ordered set of selected task ids."""

    def __init__(self, task_ids: Iterable[str] = ()):
        self._ids: dict[str, None] = dict.fromkeys(task_ids)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def toggle(self, task_id: str) -> bool:
        """Flip selection of one task. Returns True if it is now selected."""
        if task_id in self._ids:
            del self._ids[task_id]
            return False
        self._ids[task_id] = None
        return True

    def select(self, task_ids: Iterable[str]) -> None:
        for task_id in task_ids:
            self._ids.setdefault(task_id, None)

    def select_all(self, tasks: Iterable[Task]) -> None:
        """Add every task in a (usually filtered) listing."""
        self.select(t.id for t in tasks)

    def clear(self) -> None:
        self._ids.clear()

    def apply(self, store: TaskStore, action: BulkAction | str) -> BulkResult:
        """
        Run one bulk action over the selection, then clear it.

        PermissionDenied and PersistenceError propagate with the selection
        left intact so the user can retry.
        """
        action = parse_enum(BulkAction, action, "bulk action")
        if action == BulkAction.DELETE:
            result = store.bulk_delete(self.ids)
        elif action == BulkAction.COMPLETE:
            result = store.bulk_set_status(self.ids, Status.COMPLETED)
        else:
            result = store.bulk_set_status(self.ids, Status.IN_PROGRESS)
        self.clear()
        return result
