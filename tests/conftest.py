"""Shared fixtures for task store tests."""

from datetime import date, datetime, time

import pytest

from mitigate.adapters.capabilities import AllowAllCapabilities, StaticCapabilities
from mitigate.core.errors import PersistenceError
from mitigate.task_store import TaskStore


class MemoryStore:
    """In-memory PersistenceStore that can be told to fail."""

    def __init__(self, initial: dict | None = None):
        self.data = dict(initial or {})
        self.saves = 0
        self.fail = False

    def load(self, key):
        return self.data.get(key)

    def save(self, key, records):
        if self.fail:
            raise PersistenceError("store unavailable")
        self.saves += 1
        self.data[key] = records


class Clock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class Ids:
    """Sequential task ids: t1, t2, ..."""

    def __init__(self):
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"t{self.count}"


@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def clock(today):
    return Clock(datetime.combine(today, time(10, 0)))


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def make_store(memory_store, clock):
    """Factory for a TaskStore with chosen capabilities."""

    def _make(granted=None, store=None, audit_log=None):
        oracle = AllowAllCapabilities() if granted is None else StaticCapabilities(granted)
        return TaskStore(
            oracle=oracle,
            store=store or memory_store,
            actor="alice@example.com",
            audit_log=audit_log,
            clock=clock,
            id_factory=Ids(),
        )

    return _make


@pytest.fixture
def task_store(make_store):
    return make_store()
