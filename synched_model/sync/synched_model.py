"""Engine keeping a local snapshot in sync with a remote data source."""

import asyncio
import inspect
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import structlog

from synched_model.models.config import SyncConfig
from synched_model.sync import state_machine
from synched_model.sync.adapter import AdapterEvent, DataSourceAdapter
from synched_model.sync.changes import apply_changes as apply_json_patch
from synched_model.sync.events import EventEmitter
from synched_model.sync.models import SyncState, SyncStatus, Transition
from synched_model.utils.config_loader import ConfigLoader
from synched_model.utils.logging_config import configure_logging_from_config
from synched_model.utils.retry import RetryExhaustedError, retry_with_backoff

log = structlog.stdlib.get_logger()


class SynchedModel(EventEmitter):
    """Local replica of a remote data set, kept in sync through a data source adapter.

    Emitted events:

    - ``in_sync``: the snapshot was fully fetched and is trustworthy
    - ``out_of_sync`` (error): the snapshot is stale
    - ``reset`` (data): a full snapshot replaced the previous one
    - ``change`` (changes, data): a change list was applied to the snapshot
    - ``error`` (error): a full resync failed after every retry

    Resyncs run as tasks on the running asyncio event loop, so a data source
    that emits ``connect`` must do so from within that loop.
    """

    def __init__(
        self,
        data_source: DataSourceAdapter,
        config: SyncConfig | None = None,
        apply_changes: Callable[[Any, Any], Any] | None = None,
    ):
        """
        Subscribe to the data source and start connecting.

        Args:
            data_source: Adapter to the remote data source
            config: Optional configuration (defaults to SyncConfig())
            apply_changes: Optional callable applying a change list to the
                snapshot in place (defaults to JSON Patch application)

        Raises:
            TypeError: If data_source does not implement DataSourceAdapter or
                its fetch is not a coroutine function
        """
        super().__init__()

        if not isinstance(data_source, DataSourceAdapter):
            raise TypeError(
                f"data_source must implement DataSourceAdapter, got {type(data_source).__name__}"
            )
        if not inspect.iscoroutinefunction(data_source.fetch):
            raise TypeError(
                f"{type(data_source).__name__}.fetch must be a coroutine function (async def)"
            )

        self._data_source = data_source
        self._config: SyncConfig = config or SyncConfig()
        self._apply_changes = apply_changes or apply_json_patch
        self._state: SyncState = state_machine.initial_state()
        self._resync_task: asyncio.Task | None = None
        self._failed_attempts = 0

        self._subscriptions: list[tuple[AdapterEvent, Callable[..., Any]]] = [
            (AdapterEvent.CONNECT, self._on_connect),
            (AdapterEvent.UPDATE, self._on_update),
            (AdapterEvent.DISCONNECT, self._on_disconnect),
            (AdapterEvent.ERROR, self._on_error),
        ]
        for event, listener in self._subscriptions:
            data_source.on(event, listener)

        log.info(
            "synched_model_initialized",
            data_source=type(data_source).__name__,
            max_attempts=self._config.retry.max_attempts,
        )

        data_source.connect()

    @classmethod
    def from_config_file(
        cls,
        data_source: DataSourceAdapter,
        config_path: str | None = None,
        config_dir: Path | None = None,
        configure_logs: bool = False,
        apply_changes: Callable[[Any, Any], Any] | None = None,
    ) -> "SynchedModel":
        """
        Build an engine from a YAML configuration file.

        Args:
            data_source: Adapter to the remote data source
            config_path: Path to the YAML file. If None, the loader picks
                <SYNCHED_MODEL_ENV>.yaml or default.yaml from config_dir
            config_dir: Directory searched when config_path is None
            configure_logs: If True, set up process-wide structlog output from
                the logging section
            apply_changes: Optional replacement for JSON Patch application

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        loader = ConfigLoader(config_dir=config_dir)
        config = loader.load_config(config_path)

        if configure_logs:
            configure_logging_from_config(config.logging)
        loader.validate_config(config)

        return cls(data_source, config=config, apply_changes=apply_changes)

    @property
    def status(self) -> SyncStatus:
        return self._state.status

    @property
    def data(self) -> Any:
        """Current snapshot. Subscribers must treat it as read-only."""
        return self._state.data

    @property
    def epoch(self) -> int:
        return self._state.epoch

    @property
    def resyncing(self) -> bool:
        """Check if a full resync is in flight."""
        return self._resync_task is not None and not self._resync_task.done()

    async def close(self) -> None:
        """Stop any resync in flight and detach from the data source."""
        self._state = replace(self._state, epoch=self._state.epoch + 1)

        task = self._resync_task
        self._resync_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        off = getattr(self._data_source, "off", None)
        if callable(off):
            for event, listener in self._subscriptions:
                off(event, listener)
        else:
            log.debug("data_source_listeners_kept", data_source=type(self._data_source).__name__)
        self._subscriptions = []

        log.info("synched_model_closed", status=self.status.value)

    def _on_connect(self) -> None:
        transition = state_machine.connect(self._state)
        if transition.is_noop:
            log.debug("connect_ignored", status=self.status.value)
            return
        self._commit(transition)

    def _on_update(self, changes: Any) -> None:
        transition = state_machine.update(self._state, changes, self._apply_changes)
        if transition.is_noop:
            log.debug("update_ignored", status=self.status.value)
            return
        self._commit(transition)

    def _on_disconnect(self) -> None:
        log.warning("data_source_disconnected", status=self.status.value)
        self._commit(state_machine.disconnect(self._state))

    def _on_error(self, err: BaseException | None = None) -> None:
        log.warning("data_source_error", status=self.status.value, error=str(err))
        self._commit(state_machine.error(self._state, err))

    def _commit(self, transition: Transition) -> None:
        """Apply a transition: store state, run resync effects, emit notifications.

        Status is only committed when its notification is emitted, so listeners
        of earlier notifications (``reset``) still observe the previous status.
        """
        target = transition.state
        self._state = replace(target, status=self._state.status)

        if transition.cancel_resync:
            self._cancel_resync()
        if transition.start_resync:
            self._start_resync(target.epoch)

        for notification in transition.notifications:
            # A listener fed a newer input to the engine; the rest is stale
            if self._state.epoch != target.epoch:
                log.debug("notifications_superseded", event=notification.event)
                break
            if notification.status is not None and notification.status is not self.status:
                log.info(
                    "status_changed",
                    previous=self.status.value,
                    status=notification.status.value,
                    epoch=self.epoch,
                )
            if notification.status is not None:
                self._state = replace(self._state, status=notification.status)
            self.emit(notification.event, *notification.args)

    def _start_resync(self, epoch: int) -> None:
        loop = asyncio.get_running_loop()
        self._failed_attempts = 0
        self._resync_task = loop.create_task(self._resync(epoch))
        self._resync_task.add_done_callback(self._log_resync_failure)

    @staticmethod
    def _log_resync_failure(task: asyncio.Task) -> None:
        # Raised by a listener of the resync outcome; nothing awaits the task
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error("resync_task_failed", error=str(error), exc_info=error)

    def _cancel_resync(self) -> None:
        task = self._resync_task
        if task is None:
            return
        self._resync_task = None
        # The resync completing right now is discarded by its epoch instead
        if not task.done() and task is not asyncio.current_task(task.get_loop()):
            task.cancel()
            log.info("resync_cancelled")

    def _count_failed_attempt(self, attempt: int, error: Exception, delay: float) -> None:
        self._failed_attempts = attempt

    async def _resync(self, epoch: int) -> None:
        retry = self._config.retry
        log.info("resync_started", epoch=epoch, max_attempts=retry.max_attempts)

        try:
            snapshot = await retry_with_backoff(
                self._data_source.fetch,
                max_attempts=retry.max_attempts,
                policy=retry.to_policy(),
                on_attempt_failed=self._count_failed_attempt,
            )
        except RetryExhaustedError as e:
            log.error(
                "resync_exhausted",
                epoch=epoch,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            self._finish_resync(epoch, state_machine.resync_failed(self._state, epoch, e.last_error))
            return

        log.info("resync_completed", epoch=epoch, failed_attempts=self._failed_attempts)
        self._finish_resync(epoch, state_machine.resync_succeeded(self._state, epoch, snapshot))

    def _finish_resync(self, epoch: int, transition: Transition) -> None:
        if self._resync_task is asyncio.current_task():
            self._resync_task = None

        if transition.is_noop:
            log.info("stale_resync_discarded", epoch=epoch, current_epoch=self.epoch)
            return

        self._commit(transition)
