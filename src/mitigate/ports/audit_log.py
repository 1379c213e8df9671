"""Audit log interface."""

from typing import Protocol


class AuditLog(Protocol):
    """Append-only record of who changed what."""

    def record(self, action: str, details: dict) -> None:
        """Append an entry for an action that has been committed."""
        ...
