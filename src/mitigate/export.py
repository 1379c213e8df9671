"""Flattened task records for tabular export."""

import csv
import json
from pathlib import Path
from typing import IO

from .core.tasks import Task

EXPORT_COLUMNS = [
    "ID",
    "Title",
    "Description",
    "Category",
    "Priority",
    "Status",
    "Assigned To",
    "Due Date",
    "Schedule",
    "Source",
    "Created",
    "Completed",
]


def export_record(task: Task) -> dict:
    """One flat row per task, plain strings only."""
    return {
        "ID": task.id,
        "Title": task.title,
        "Description": task.description,
        "Category": task.category.value,
        "Priority": task.priority.value,
        "Status": task.status.value,
        "Assigned To": task.assignee,
        "Due Date": task.due_date.isoformat() if task.due_date else "",
        "Schedule": task.schedule.value,
        "Source": task.source.value,
        "Created": task.created_at.isoformat(),
        "Completed": task.completed_at.isoformat() if task.completed_at else "",
    }


def write_csv(records: list[dict], out: IO[str]) -> None:
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for record in records:
        writer.writerow(record)


def write_json(records: list[dict], out: IO[str]) -> None:
    json.dump(records, out, indent=2)
    out.write("\n")


def default_export_name(fmt: str, as_of) -> Path:
    """File name used when no output path is given."""
    return Path(f"tasks-export-{as_of.isoformat()}.{fmt}")
