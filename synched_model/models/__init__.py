"""Configuration models for the sync engine."""

from synched_model.models.config import LoggingConfig, RetryConfig, SyncConfig

__all__ = [
    "LoggingConfig",
    "RetryConfig",
    "SyncConfig",
]
