"""Composition layer between the CLI and the stores.

Builds a TaskStore and an ApprovalQueue wired to the configured adapters.
"""

from .adapters.capabilities import RoleCapabilities
from .adapters.file_audit_log import FileAuditLog
from .adapters.json_files import load_playbooks, load_snapshot
from .adapters.json_store import JsonFileStore
from .approval_queue import ApprovalQueue
from .config import Config
from .core.errors import NotFound
from .core.playbooks import Playbook
from .task_store import TaskStore


def _audit_log(config: Config) -> FileAuditLog:
    return FileAuditLog(
        config.audit_log_path,
        actor=config.actor,
        max_entries=config.audit_log_max_entries,
    )


def build_task_store(config: Config) -> TaskStore:
    """Task store for the configured actor and role."""
    return TaskStore(
        oracle=RoleCapabilities(config.role),
        store=JsonFileStore(config.data_path),
        actor=config.actor,
        audit_log=_audit_log(config),
    )


def build_approval_queue(config: Config) -> ApprovalQueue:
    """Approval queue sharing the task store's data directory and audit log."""
    return ApprovalQueue(
        oracle=RoleCapabilities(config.role),
        store=JsonFileStore(config.data_path),
        actor=config.actor,
        audit_log=_audit_log(config),
        self_approval_allowed=config.self_approval_allowed,
    )


def refresh_recommendations(store: TaskStore, config: Config, snapshot_file: str | None = None):
    """Load the snapshot and recompute the store's recommendations."""
    snapshot = load_snapshot(snapshot_file or config.snapshot_path)
    return store.refresh_recommendations(snapshot)


def find_playbook(config: Config, playbook_id: str) -> Playbook:
    playbooks = load_playbooks(config.playbook_path)
    if playbook_id not in playbooks:
        raise NotFound("Playbook", playbook_id)
    return playbooks[playbook_id]
