"""Mitigate CLI - remediation task tracking."""

import json
import logging
import sys
from datetime import date
from pathlib import Path

import click

from .config import load_config
from .core.approvals import RemoteAction
from .core.errors import MitigateError
from .core.query import ALL, OVERDUE, SortKey, SortOrder, TaskFilters
from .core.tasks import Category, Priority, Schedule, Status, Task
from .export import default_export_name, write_csv, write_json
from .selection import BulkAction, TaskSelection
from .workflows import build_approval_queue, build_task_store, find_playbook, refresh_recommendations

PRIORITY_MARKERS = {
    Priority.CRITICAL: "!!!",
    Priority.HIGH: "!! ",
    Priority.MEDIUM: "!  ",
    Priority.LOW: "   ",
}

STATUS_MARKERS = {
    Status.PENDING: " ",
    Status.IN_PROGRESS: ">",
    Status.COMPLETED: "x",
}


def _choices(enum_cls, *extra: str) -> click.Choice:
    return click.Choice([*extra, *(member.value for member in enum_cls)])


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _task_line(task: Task, today: date) -> str:
    due = ""
    days = task.days_until_due(today)
    if task.is_overdue(today):
        due = f" (OVERDUE {task.due_date}, {-days}d late)"
    elif days == 0 and not task.is_completed:
        due = " (due today)"
    elif task.due_date:
        due = f" (due {task.due_date})"
    assignee = f" @{task.assignee}" if task.assignee else ""
    return (
        f"[{STATUS_MARKERS[task.status]}] [{PRIORITY_MARKERS[task.priority]}] "
        f"{task.title}{due}{assignee}  {task.id}"
    )


def _show_task(task: Task, verb: str) -> None:
    click.echo(f"{verb}: {task.title} ({task.id}, {task.status.value})")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option()
def main(debug: bool):
    """Mitigate - remediation tasks and recommendations."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@click.option("--snapshot", "snapshot_file", default=None, help="Snapshot JSON file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def recommend(snapshot_file: str | None, as_json: bool):
    """Show recommendations for the current environment snapshot."""
    config = load_config()
    try:
        store = build_task_store(config)
        recommendations = refresh_recommendations(store, config, snapshot_file)
    except MitigateError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in recommendations], indent=2))
        return

    for rec in recommendations:
        click.echo(f"[{PRIORITY_MARKERS[rec.priority]}] {rec.title}  ({rec.id})")
        click.echo(f"      {rec.description}")
        click.echo(f"      -> {rec.action}")


@main.command()
@click.argument("recommendation_id")
@click.option("--snapshot", "snapshot_file", default=None, help="Snapshot JSON file")
def accept(recommendation_id: str, snapshot_file: str | None):
    """Create a task from a recommendation."""
    config = load_config()
    try:
        store = build_task_store(config)
        refresh_recommendations(store, config, snapshot_file)
        task = store.accept_recommendation(recommendation_id)
    except MitigateError as e:
        _fail(e)
    _show_task(task, "Created")


@main.command()
@click.option("--status", type=click.Choice([ALL, OVERDUE, *(s.value for s in Status)]), default=ALL)
@click.option("--priority", type=_choices(Priority, ALL), default=ALL)
@click.option("--category", type=_choices(Category, ALL), default=ALL)
@click.option("--search", default="", help="Match title, description or assignee")
@click.option("--sort", "sort_by", type=_choices(SortKey), default=SortKey.PRIORITY.value)
@click.option("--order", "sort_order", type=_choices(SortOrder), default=SortOrder.ASC.value)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(status, priority, category, search, sort_by, sort_order, as_json: bool):
    """List tasks. Overdue tasks always come first."""
    config = load_config()
    try:
        store = build_task_store(config)
        filters = TaskFilters(status=status, priority=priority, category=category, search=search)
        listed = store.list_tasks(filters, sort_by, sort_order)
    except MitigateError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([t.to_record() for t in listed], indent=2))
        return

    if not listed:
        click.echo("No tasks match the current filters.")
        return

    today = date.today()
    for task in listed:
        click.echo(_task_line(task, today))


@main.command()
@click.argument("title")
@click.option("--category", type=_choices(Category), required=True)
@click.option("--priority", type=_choices(Priority), default=Priority.MEDIUM.value)
@click.option("--description", default="")
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD)")
@click.option("--assignee", default="")
@click.option("--schedule", type=_choices(Schedule), default=Schedule.NONE.value)
@click.option("--notes", default="")
def add(title, category, priority, description, due_date, assignee, schedule, notes):
    """Create a task."""
    config = load_config()
    try:
        task = build_task_store(config).create_task(
            title,
            category,
            priority,
            description=description,
            due_date=due_date,
            assignee=assignee,
            schedule=schedule,
            notes=notes,
        )
    except MitigateError as e:
        _fail(e)
    _show_task(task, "Created")


@main.command()
@click.argument("task_id")
@click.option("--title", default=None)
@click.option("--category", type=_choices(Category), default=None)
@click.option("--priority", type=_choices(Priority), default=None)
@click.option("--description", default=None)
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD), empty to clear")
@click.option("--assignee", default=None)
@click.option("--schedule", type=_choices(Schedule), default=None)
@click.option("--notes", default=None)
def edit(task_id, **fields):
    """Edit a task's fields."""
    changes = {name: value for name, value in fields.items() if value is not None}
    if not changes:
        click.echo("Nothing to change.")
        return

    config = load_config()
    try:
        task = build_task_store(config).edit_task(task_id, **changes)
    except MitigateError as e:
        _fail(e)
    _show_task(task, "Updated")


def _status_command(name: str, verb: str, help_text: str):
    @main.command(name, help=help_text)
    @click.argument("task_id")
    def command(task_id: str):
        config = load_config()
        try:
            store = build_task_store(config)
            before = len(store.tasks)
            task = getattr(store, name)(task_id)
        except MitigateError as e:
            _fail(e)
        _show_task(task, verb)
        if len(store.tasks) > before:
            successor = store.tasks[-1]
            click.echo(f"Next {task.schedule.value} task scheduled for {successor.due_date} ({successor.id})")

    return command


start = _status_command("start", "Started", "Move a pending task to in-progress.")
pause = _status_command("pause", "Paused", "Move an in-progress task back to pending.")
complete = _status_command("complete", "Completed", "Complete a task (schedules the next one if recurring).")
reopen = _status_command("reopen", "Reopened", "Reopen a completed task.")


@main.command()
@click.argument("task_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def delete(task_id: str, yes: bool):
    """Delete a task permanently."""
    if not yes and not click.confirm(f"Delete task {task_id}?"):
        return
    config = load_config()
    try:
        build_task_store(config).delete_task(task_id)
    except MitigateError as e:
        _fail(e)
    click.echo(f"Deleted: {task_id}")


@main.command()
@click.argument("action", type=_choices(BulkAction))
@click.argument("task_ids", nargs=-1, required=True)
def bulk(action: str, task_ids: tuple[str, ...]):
    """Apply one action to several tasks."""
    config = load_config()
    selection = TaskSelection(task_ids)
    try:
        result = selection.apply(build_task_store(config), action)
    except MitigateError as e:
        _fail(e)

    click.echo(f"Applied to {len(result.applied)} task(s)")
    if result.skipped:
        click.echo(f"Skipped: {', '.join(result.skipped)}")


@main.command()
@click.argument("playbook_id")
def playbook(playbook_id: str):
    """Create a task from a remediation playbook."""
    config = load_config()
    try:
        task = build_task_store(config).create_task_from_playbook(find_playbook(config, playbook_id))
    except MitigateError as e:
        _fail(e)
    _show_task(task, "Created")


@main.command()
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), default="csv")
@click.option("--output", "-o", default=None, help="Output file ('-' for stdout)")
def export(fmt: str, output: str | None):
    """Export all tasks for reporting."""
    config = load_config()
    try:
        records = build_task_store(config).export_tasks()
    except MitigateError as e:
        _fail(e)

    writer = write_csv if fmt == "csv" else write_json
    if output == "-":
        writer(records, sys.stdout)
        return

    path = Path(output) if output else default_export_name(fmt, date.today())
    with path.open("w", newline="") as out:
        writer(records, out)
    click.echo(f"Exported {len(records)} task(s) to {path}")


def _parse_data(ctx, param, value):
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}")
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object")
    return data


@main.command()
@click.argument("action", type=_choices(RemoteAction))
@click.option("--data", required=True, callback=_parse_data, help='Action payload as JSON, e.g. \'{"userId": "..."}\'')
@click.option("--description", default="", help="What the action is for")
def request(action: str, data: dict, description: str):
    """Queue a directory action for another admin to approve."""
    config = load_config()
    try:
        item = build_approval_queue(config).submit(action, data, description)
    except MitigateError as e:
        _fail(e)
    click.echo(f"Submitted for approval: {item.description} ({item.id})")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def approvals(as_json: bool):
    """List actions waiting for approval."""
    config = load_config()
    try:
        pending = build_approval_queue(config).pending()
    except MitigateError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([p.to_record() for p in pending], indent=2))
        return

    if not pending:
        click.echo("No pending approvals.")
        return

    for item in pending:
        click.echo(f"{item.id}  {item.action.value}  {item.description}")
        click.echo(f"      requested by {item.requested_by} at {item.requested_at:%Y-%m-%d %H:%M}")


@main.command()
@click.argument("pending_id")
def approve(pending_id: str):
    """Approve and run a pending action."""
    config = load_config()
    try:
        item = build_approval_queue(config).approve(pending_id)
    except MitigateError as e:
        _fail(e)
    click.echo(f"Approved and executed: {item.description}")


@main.command()
@click.argument("pending_id")
@click.option("--reason", default="", help="Why the action is rejected")
def reject(pending_id: str, reason: str):
    """Reject a pending action without running it."""
    config = load_config()
    try:
        item = build_approval_queue(config).reject(pending_id, reason)
    except MitigateError as e:
        _fail(e)
    click.echo(f"Rejected: {item.description}")


@main.command()
def stats():
    """Task counts and completion progress."""
    config = load_config()
    try:
        counts = build_task_store(config).stats()
    except MitigateError as e:
        _fail(e)

    click.echo(f"Total:       {counts.total}")
    click.echo(f"Pending:     {counts.pending}")
    click.echo(f"In progress: {counts.in_progress}")
    click.echo(f"Completed:   {counts.completed}")
    click.echo(f"Overdue:     {counts.overdue}")
    click.echo(f"Progress:    {counts.progress_percent}%")


if __name__ == "__main__":
    main()
