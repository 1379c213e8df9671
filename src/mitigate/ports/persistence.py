"""Persistence store interface."""

from typing import Protocol


class PersistenceStore(Protocol):
    """Key-value storage for the serialized task collection."""

    def load(self, key: str) -> list[dict] | None:
        """Load the records stored under key. Returns None if nothing was saved."""
        ...

    def save(self, key: str, records: list[dict]) -> None:
        """Replace the records stored under key. Raises PersistenceError on failure."""
        ...
