"""Transition functions of the synchronization state machine.

Each function takes the current ``SyncState`` and one input, and returns a
``Transition`` describing the new state, the notifications to emit and the
resync side effects to perform. None of them touch the data source or emit
anything themselves.
"""

from dataclasses import replace
from typing import Any, Callable

from synched_model.sync.adapter import DisconnectedError
from synched_model.sync.models import Notification, SyncState, SyncStatus, Transition

RESET_EVENT = "reset"
CHANGE_EVENT = "change"
ERROR_EVENT = "error"


def initial_state() -> SyncState:
    return SyncState()


def connect(state: SyncState) -> Transition:
    """
    Handle a connection (or reconnection) to the data source.

    Already synchronized: nothing to do. Otherwise a new epoch starts and a
    full resync is requested, superseding any resync still in flight.
    """
    if state.in_sync:
        return Transition(state=state)

    return Transition(
        state=replace(state, epoch=state.epoch + 1),
        start_resync=True,
        cancel_resync=True,
    )


def resync_succeeded(state: SyncState, epoch: int, snapshot: Any) -> Transition:
    """Store a freshly fetched snapshot and promote to in_sync."""
    if epoch != state.epoch:
        return Transition(state=state)

    return Transition(
        state=replace(state, status=SyncStatus.IN_SYNC, data=snapshot),
        notifications=(
            Notification(event=RESET_EVENT, args=(snapshot,)),
            Notification.status_change(SyncStatus.IN_SYNC),
        ),
    )


def resync_failed(state: SyncState, epoch: int, error: BaseException) -> Transition:
    """Report an exhausted resync. The stale snapshot is kept."""
    if epoch != state.epoch:
        return Transition(state=state)

    return Transition(
        state=replace(state, status=SyncStatus.OUT_OF_SYNC),
        notifications=(
            Notification(event=ERROR_EVENT, args=(error,)),
            Notification.status_change(SyncStatus.OUT_OF_SYNC, error),
        ),
    )


def update(
    state: SyncState,
    changes: Any,
    apply_changes: Callable[[Any, Any], Any],
) -> Transition:
    """
    Apply a change list to the snapshot while in sync.

    Args:
        state: Current state
        changes: Change list emitted by the data source
        apply_changes: Callable applying ``changes`` to the snapshot in place
            and returning the resulting snapshot

    Returns:
        Transition carrying a ``change`` notification, or a no-op when out of
        sync. Errors raised by ``apply_changes`` propagate.
    """
    if not state.in_sync:
        return Transition(state=state)

    data = apply_changes(state.data, changes)
    return Transition(
        state=replace(state, data=data),
        notifications=(Notification(event=CHANGE_EVENT, args=(changes, data)),),
    )


def error(state: SyncState, err: BaseException | None) -> Transition:
    """Demote to out_of_sync and invalidate any resync in flight."""
    return Transition(
        state=replace(state, status=SyncStatus.OUT_OF_SYNC, epoch=state.epoch + 1),
        notifications=(Notification.status_change(SyncStatus.OUT_OF_SYNC, err),),
        cancel_resync=True,
    )


def disconnect(state: SyncState) -> Transition:
    return error(state, DisconnectedError())
