"""Readers for the snapshot and playbook catalog JSON files."""

import json
import logging
from pathlib import Path

from mitigate.core.errors import PersistenceError, ValidationError
from mitigate.core.playbooks import Playbook
from mitigate.core.recommendations import Snapshot

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceError(f"Expected a JSON object in {path}")
    return data


def load_snapshot(path: Path | str | None) -> Snapshot:
    """Load an environment snapshot. A missing file yields an empty snapshot."""
    if not path:
        return Snapshot()
    path = Path(path).expanduser()
    if not path.exists():
        logger.info(f"No snapshot at {path}, using defaults")
        return Snapshot()
    return Snapshot.from_dict(_read_json(path))


def load_playbooks(path: Path | str | None) -> dict[str, Playbook]:
    """Load the playbook catalog keyed by playbook id. Invalid entries are skipped."""
    if not path:
        return {}
    path = Path(path).expanduser()
    if not path.exists():
        return {}
    playbooks = {}
    for playbook_id, entry in _read_json(path).items():
        if not isinstance(entry, dict):
            logger.warning(f"Skipping playbook {playbook_id}: not an object")
            continue
        try:
            playbooks[playbook_id] = Playbook.from_dict(playbook_id, entry)
        except ValidationError as e:
            logger.warning(f"Skipping playbook {playbook_id}: {e}")
    return playbooks
