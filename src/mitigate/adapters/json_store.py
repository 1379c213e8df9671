"""File-based JSON persistence adapter."""

import json
import logging
import os
from pathlib import Path

from mitigate.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """
    JSON file storage.

    Implements PersistenceStore protocol. Each key gets its own file.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()

    def _path_for_key(self, key: str) -> Path:
        """Get the file path for a storage key."""
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> list[dict] | None:
        """Load records for a key. Returns None if missing or unreadable."""
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            logger.error(f"Ignoring malformed data in {path}: {e}")
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e
        if not isinstance(data, list):
            logger.error(f"Ignoring {path}: expected a list of records")
            return None
        return data

    def save(self, key: str, records: list[dict]) -> None:
        """Write records atomically, replacing any previous content."""
        path = self._path_for_key(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(records, indent=2))
            os.replace(tmp_path, path)
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save {path}: {e}")
            raise PersistenceError(f"Failed to save {path}: {e}") from e
