"""Filtering, sorting and counting over the task collection.

Pure functions - no I/O. Every sort is stable, so tasks that tie on the sort
key keep their input (creation) order.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .errors import ValidationError
from .tasks import Category, Priority, Status, Task, filter_overdue, parse_enum

ALL = "all"
OVERDUE = "overdue"


class SortKey(Enum):
    PRIORITY = "priority"
    DUE_DATE = "dueDate"
    CREATED = "created"
    TITLE = "title"
    STATUS = "status"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TaskFilters:
    """Filter values as the UI sends them. "all" disables a filter."""

    status: str = ALL
    priority: str = ALL
    category: str = ALL
    search: str = ""

    def __post_init__(self):
        if self.status not in (ALL, OVERDUE):
            parse_enum(Status, self.status, "status filter")
        if self.priority != ALL:
            parse_enum(Priority, self.priority, "priority filter")
        if self.category != ALL:
            parse_enum(Category, self.category, "category filter")

    def matches(self, task: Task, as_of: date) -> bool:
        if self.status == OVERDUE:
            if not task.is_overdue(as_of):
                return False
        elif self.status != ALL and task.status.value != self.status:
            return False
        if self.priority != ALL and task.priority.value != self.priority:
            return False
        if self.category != ALL and task.category.value != self.category:
            return False
        return matches_search(task, self.search)


def matches_search(task: Task, search: str) -> bool:
    """Case-insensitive substring match on title, description and assignee."""
    needle = (search or "").strip().casefold()
    if not needle:
        return True
    return any(needle in (text or "").casefold() for text in (task.title, task.description, task.assignee))


def filter_tasks(tasks: list[Task], filters: TaskFilters, as_of: date | None = None) -> list[Task]:
    as_of = as_of or date.today()
    return [t for t in tasks if filters.matches(t, as_of)]


def sort_tasks(
    tasks: list[Task],
    sort_by: SortKey = SortKey.PRIORITY,
    sort_order: SortOrder = SortOrder.ASC,
) -> list[Task]:
    """Sort by one key. Tasks without a due date sort last in both directions."""
    descending = sort_order == SortOrder.DESC

    if sort_by == SortKey.DUE_DATE:
        dated = [t for t in tasks if t.due_date]
        undated = [t for t in tasks if not t.due_date]
        return sorted(dated, key=lambda t: t.due_date, reverse=descending) + undated

    if sort_by == SortKey.PRIORITY:
        key = lambda t: t.priority.rank
    elif sort_by == SortKey.CREATED:
        key = lambda t: t.created_at
    elif sort_by == SortKey.TITLE:
        key = lambda t: t.title.casefold()
    elif sort_by == SortKey.STATUS:
        key = lambda t: t.status.rank
    else:
        raise ValidationError(f"Unknown sort key: {sort_by}")

    # reverse=True keeps equal elements in input order
    return sorted(tasks, key=key, reverse=descending)


def pin_overdue(tasks: list[Task], as_of: date | None = None) -> list[Task]:
    """Move overdue tasks ahead of the rest without reordering either group."""
    as_of = as_of or date.today()
    overdue = [t for t in tasks if t.is_overdue(as_of)]
    rest = [t for t in tasks if not t.is_overdue(as_of)]
    return overdue + rest


def list_tasks(
    tasks: list[Task],
    filters: TaskFilters | None = None,
    sort_by: SortKey | str = SortKey.PRIORITY,
    sort_order: SortOrder | str = SortOrder.ASC,
    as_of: date | None = None,
) -> list[Task]:
    """
    Filter, sort, then pin overdue tasks to the top.

    Pure function - returns a new list, never touches the input.
    """
    as_of = as_of or date.today()
    filters = filters or TaskFilters()
    sort_by = parse_enum(SortKey, sort_by, "sort key")
    sort_order = parse_enum(SortOrder, sort_order, "sort order")

    filtered = filter_tasks(tasks, filters, as_of)
    ordered = sort_tasks(filtered, sort_by, sort_order)
    return pin_overdue(ordered, as_of)


@dataclass(frozen=True)
class TaskStats:
    """Dashboard counters."""

    total: int
    pending: int
    in_progress: int
    completed: int
    overdue: int

    @property
    def progress_percent(self) -> int:
        if not self.total:
            return 0
        return int(self.completed * 100 / self.total + 0.5)


def task_stats(tasks: list[Task], as_of: date | None = None) -> TaskStats:
    as_of = as_of or date.today()
    return TaskStats(
        total=len(tasks),
        pending=sum(1 for t in tasks if t.status == Status.PENDING),
        in_progress=sum(1 for t in tasks if t.status == Status.IN_PROGRESS),
        completed=sum(1 for t in tasks if t.status == Status.COMPLETED),
        overdue=len(filter_overdue(tasks, as_of)),
    )
