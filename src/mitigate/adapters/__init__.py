"""Adapters - I/O implementations of ports."""

from .json_store import JsonFileStore
from .file_audit_log import FileAuditLog, NullAuditLog
from .capabilities import AllowAllCapabilities, RoleCapabilities, StaticCapabilities
from .json_files import load_playbooks, load_snapshot
from .action_executor import LoggingActionExecutor

__all__ = [
    "JsonFileStore",
    "FileAuditLog",
    "NullAuditLog",
    "AllowAllCapabilities",
    "StaticCapabilities",
    "RoleCapabilities",
    "load_snapshot",
    "load_playbooks",
    "LoggingActionExecutor",
]
