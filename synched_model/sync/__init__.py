"""Synchronization components keeping a local snapshot in sync with a data source."""

from synched_model.sync.adapter import AdapterEvent, DataSourceAdapter, DisconnectedError
from synched_model.sync.changes import apply_changes, compute_changes
from synched_model.sync.events import EventEmitter
from synched_model.sync.models import Notification, SyncState, SyncStatus, Transition
from synched_model.sync.synched_model import SynchedModel

__all__ = [
    "AdapterEvent",
    "DataSourceAdapter",
    "DisconnectedError",
    "EventEmitter",
    "Notification",
    "SyncState",
    "SyncStatus",
    "SynchedModel",
    "Transition",
    "apply_changes",
    "compute_changes",
]
