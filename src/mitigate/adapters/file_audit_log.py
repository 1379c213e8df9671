"""File-based audit log adapter."""

import json
import logging
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 500


class FileAuditLog:
    """
    JSON audit log.

    Implements AuditLog protocol. Keeps only the newest max_entries entries.
    """

    def __init__(self, path: Path | str, actor: str = "unknown", max_entries: int = DEFAULT_MAX_ENTRIES):
        self.path = Path(path).expanduser()
        self.actor = actor
        self.max_entries = max_entries

    def entries(self) -> list[dict]:
        """Read all stored entries, oldest first."""
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Cannot read audit log {self.path}, starting fresh: {e}")
            return []
        return data if isinstance(data, list) else []

    def record(self, action: str, details: dict) -> None:
        """Append an entry, trimming the oldest ones past max_entries."""
        entries = self.entries()
        entries.append(
            {
                "timestamp": datetime.now().isoformat(),
                "user": self.actor,
                "action": action,
                "details": details,
            }
        )
        if len(entries) > self.max_entries:
            entries = entries[-self.max_entries :]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(entries, indent=2, default=str))
        except OSError as e:
            # Mutation already committed by the caller
            logger.error(f"Failed to write audit log {self.path}: {e}")


class NullAuditLog:
    """Audit log that records nothing."""

    def record(self, action: str, details: dict) -> None:
        pass
