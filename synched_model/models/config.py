"""Configuration models for the sync engine."""

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from synched_model.utils.retry import BackoffPolicy


class RetryConfig(BaseModel):
    """Configuration for the full-resync retry loop."""

    max_attempts: int = Field(
        default=20, ge=1, le=1000, description="Maximum fetch attempts per resync"
    )
    base_delay: float = Field(
        default=0.05, gt=0.0, description="Delay in seconds after the first failed fetch"
    )
    factor: float = Field(
        default=1.5, gt=1.0, description="Growth factor between consecutive delays"
    )
    max_delay: float | None = Field(
        default=None, description="Optional cap on a single delay in seconds"
    )

    @model_validator(mode="after")
    def _check_max_delay(self) -> "RetryConfig":
        if self.max_delay is not None and self.max_delay < self.base_delay:
            raise ValueError("max_delay must be greater than or equal to base_delay")
        return self

    def to_policy(self) -> BackoffPolicy:
        """Build the backoff policy described by this section."""
        return BackoffPolicy(
            base_delay=self.base_delay,
            factor=self.factor,
            max_delay=self.max_delay,
        )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


class SyncConfig(BaseSettings):
    """Main sync engine configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the SYNCHED_MODEL_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNCHED_MODEL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
