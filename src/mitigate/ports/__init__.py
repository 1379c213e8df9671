"""Ports - interfaces/protocols for external dependencies."""

from .capability_oracle import CapabilityOracle
from .persistence import PersistenceStore
from .audit_log import AuditLog
from .action_executor import ActionExecutor

__all__ = [
    "CapabilityOracle",
    "PersistenceStore",
    "AuditLog",
    "ActionExecutor",
]
