"""Shared fixtures: an in-memory data source and an event recorder."""

import asyncio
import copy
from typing import Any, Callable

import pytest

from synched_model.models.config import RetryConfig, SyncConfig
from synched_model.sync.adapter import DataSourceAdapter
from synched_model.sync.models import SyncStatus
from synched_model.sync.synched_model import SynchedModel

EVENTS = ("in_sync", "out_of_sync", "reset", "change", "error")


class FakeDataSource(DataSourceAdapter):
    """Data source serving canned snapshots, failing the first ``failures`` fetches."""

    def __init__(
        self,
        snapshots: list[Any] | None = None,
        failures: int = 0,
        auto_connect: bool = True,
        fetch_delay: float = 0.0,
    ):
        super().__init__()
        self.snapshots = snapshots if snapshots is not None else [{"key1": "value1"}]
        self.failures = failures
        self.auto_connect = auto_connect
        self.fetch_delay = fetch_delay
        self.connect_calls = 0
        self.fetch_calls = 0
        self._served = 0

    def connect(self) -> None:
        self.connect_calls += 1
        if self.auto_connect:
            self.emit("connect")

    async def fetch(self) -> Any:
        self.fetch_calls += 1
        await asyncio.sleep(self.fetch_delay)
        if self.fetch_calls <= self.failures:
            raise ConnectionError(f"fetch {self.fetch_calls} failed")
        snapshot = self.snapshots[min(self._served, len(self.snapshots) - 1)]
        self._served += 1
        return copy.deepcopy(snapshot)


class EventRecorder:
    """Records (event, args, status at emission) for every engine notification."""

    def __init__(self, model: SynchedModel):
        self.model = model
        self.records: list[tuple[str, tuple[Any, ...], SyncStatus]] = []
        for event in EVENTS:
            model.on(event, self._listener(event))

    def _listener(self, event: str) -> Callable[..., None]:
        def record(*args: Any) -> None:
            self.records.append((event, args, self.model.status))

        return record

    @property
    def names(self) -> list[str]:
        return [event for event, _, _ in self.records]

    def args_of(self, event: str) -> list[tuple[Any, ...]]:
        return [args for name, args, _ in self.records if name == event]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


@pytest.fixture
def fast_config() -> SyncConfig:
    """Default attempt budget with near-zero backoff delays."""
    return SyncConfig(retry=RetryConfig(base_delay=0.0005, factor=1.05))


@pytest.fixture
def make_source() -> Callable[..., FakeDataSource]:
    return FakeDataSource


@pytest.fixture
def recorder() -> Callable[[SynchedModel], EventRecorder]:
    return EventRecorder


@pytest.fixture
def settle() -> Callable[..., Any]:
    return wait_until
