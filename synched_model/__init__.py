"""Keep a local snapshot of a remote data set in sync through a data source adapter."""

from synched_model.models import LoggingConfig, RetryConfig, SyncConfig
from synched_model.sync import (
    AdapterEvent,
    DataSourceAdapter,
    DisconnectedError,
    SynchedModel,
    SyncStatus,
    apply_changes,
    compute_changes,
)
from synched_model.utils import BackoffPolicy, RetryExhaustedError, retry_with_backoff

__version__ = "0.1.0"

__all__ = [
    "AdapterEvent",
    "BackoffPolicy",
    "DataSourceAdapter",
    "DisconnectedError",
    "LoggingConfig",
    "RetryConfig",
    "RetryExhaustedError",
    "SyncConfig",
    "SyncStatus",
    "SynchedModel",
    "apply_changes",
    "compute_changes",
    "retry_with_backoff",
]
