"""Shared test fixtures."""

from datetime import UTC, datetime

import pytest

from envelope_kv import StorageEngine
from envelope_kv.substrates import InMemorySubstrate


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self._now = start

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._now, tz=UTC)

    def advance(self, seconds: float) -> None:
        self._now += seconds


class ManualTask:
    def __init__(self, interval: float, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that only runs tasks when the test says so."""

    def __init__(self):
        self.tasks: list[ManualTask] = []

    def every(self, interval_seconds, callback):
        task = ManualTask(interval_seconds, callback)
        self.tasks.append(task)
        return task

    @property
    def active(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled]

    def tick(self) -> None:
        for task in self.active:
            task.callback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def substrate():
    return InMemorySubstrate()


@pytest.fixture
def make_engine(substrate, clock, scheduler):
    created = []

    def factory(namespace: str = "", **kwargs) -> StorageEngine:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("scheduler", scheduler)
        engine = StorageEngine(kwargs.pop("substrate", substrate), namespace, **kwargs)
        created.append(engine)
        return engine

    yield factory
    for engine in created:
        engine.destroy()


@pytest.fixture
def engine(make_engine):
    return make_engine("app")
