"""Configuration management for Mitigate."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

MITIGATE_HOME = Path(os.environ.get("MITIGATE_HOME", Path.home() / "mitigate"))
CONFIG_FILE = MITIGATE_HOME / "config" / "mitigate.conf"
DATA_DIR = MITIGATE_HOME / "data"


@dataclass
class Config:
    """Mitigate configuration."""

    actor: str = "unknown"
    role: str = "operator"
    data_dir: str = ""
    snapshot_file: str = ""
    playbook_file: str = ""
    audit_log_file: str = ""
    audit_log_max_entries: int = 500
    self_approval_allowed: bool = False

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR

    @property
    def snapshot_path(self) -> Path:
        if self.snapshot_file:
            return Path(self.snapshot_file).expanduser()
        return self.data_path / "snapshot.json"

    @property
    def playbook_path(self) -> Path:
        if self.playbook_file:
            return Path(self.playbook_file).expanduser()
        return MITIGATE_HOME / "config" / "playbooks.json"

    @property
    def audit_log_path(self) -> Path:
        if self.audit_log_file:
            return Path(self.audit_log_file).expanduser()
        return self.data_path / "audit-log.json"


def _unquote(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from mitigate.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "actor":
                config.actor = value
            case "role":
                config.role = value.lower()
            case "data_dir":
                config.data_dir = value
            case "snapshot_file":
                config.snapshot_file = value
            case "playbook_file":
                config.playbook_file = value
            case "audit_log_file":
                config.audit_log_file = value
            case "audit_log_max_entries":
                try:
                    config.audit_log_max_entries = int(value)
                except ValueError:
                    logger.warning(f"Invalid AUDIT_LOG_MAX_ENTRIES: {value}")
            case "self_approval_allowed":
                config.self_approval_allowed = value.lower() in ("1", "true", "yes")

    return config
