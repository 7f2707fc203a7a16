"""Data models for the synchronization state machine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SyncStatus(str, Enum):
    """Whether the local snapshot can be trusted."""

    IN_SYNC = "in_sync"
    OUT_OF_SYNC = "out_of_sync"


@dataclass(frozen=True)
class SyncState:
    """Snapshot of the engine state at a point in time."""

    status: SyncStatus = SyncStatus.OUT_OF_SYNC
    data: Any = None
    # Generation counter; resync results from an older epoch are discarded
    epoch: int = 0

    @property
    def in_sync(self) -> bool:
        return self.status is SyncStatus.IN_SYNC


@dataclass(frozen=True)
class Notification:
    """An event to emit once a transition is committed.

    When ``status`` is set, the notification announces a status change and the
    engine commits that status right before emitting it.
    """

    event: str
    args: tuple[Any, ...] = ()
    status: SyncStatus | None = None

    @classmethod
    def status_change(cls, status: SyncStatus, payload: Any = None) -> "Notification":
        """Build the notification named after a new status, with an optional payload."""
        args = () if payload is None else (payload,)
        return cls(event=status.value, args=args, status=status)


@dataclass(frozen=True)
class Transition:
    """Outcome of feeding one input to the state machine."""

    state: SyncState
    notifications: tuple[Notification, ...] = field(default_factory=tuple)
    start_resync: bool = False
    cancel_resync: bool = False

    @property
    def is_noop(self) -> bool:
        """Check if the transition changes nothing observable."""
        return not (self.notifications or self.start_resync or self.cancel_resync)
