"""Successor generation for recurring tasks.

Intervals are fixed day counts, not calendar arithmetic: a monthly task
completed on January 31st is next due on March 2nd (or March 1st in a leap
year), never on the last day of February.
"""

from datetime import date, datetime, timedelta

from .tasks import Schedule, Source, Status, Task

INTERVAL_DAYS = {
    Schedule.DAILY: 1,
    Schedule.WEEKLY: 7,
    Schedule.MONTHLY: 30,
    Schedule.QUARTERLY: 90,
}


def next_due_date(schedule: Schedule, completed_on: date) -> date | None:
    """Due date of the next occurrence, or None for non-recurring schedules."""
    days = INTERVAL_DAYS.get(schedule)
    if days is None:
        return None
    return completed_on + timedelta(days=days)


def next_occurrence(
    task: Task,
    completed_on: date,
    new_id: str,
    created_at: datetime,
    created_by: str,
) -> Task | None:
    """
    Build the successor of a task that has just been completed.

    Pure function - the caller appends the result to the collection.
    """
    due = next_due_date(task.schedule, completed_on)
    if due is None:
        return None
    return Task(
        id=new_id,
        title=task.title,
        description=task.description,
        category=task.category,
        priority=task.priority,
        status=Status.PENDING,
        due_date=due,
        assignee=task.assignee,
        schedule=task.schedule,
        notes=task.notes,
        source=Source.SCHEDULED,
        created_at=created_at,
        created_by=created_by,
        parent_task_id=task.id,
    )
