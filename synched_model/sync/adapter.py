"""Interface every data source must satisfy to be kept in sync."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from synched_model.sync.events import EventEmitter


class AdapterEvent(str, Enum):
    """Events a data source emits."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    UPDATE = "update"
    ERROR = "error"


class DisconnectedError(ConnectionError):
    """Synthetic error reported when a data source loses its connection."""

    def __init__(self, message: str = "Disconnected from data source"):
        super().__init__(message)


class DataSourceAdapter(EventEmitter, ABC):
    """Adapter to a remote data source.

    Implementations emit:

    - ``connect`` (no payload) whenever a connection is established, including
      after a reconnection
    - ``disconnect`` (no payload) when the connection is lost
    - ``update`` with a change list (JSON Patch operations) on data change
    - ``error`` with an exception on any connection error

    Classes that do not inherit from this one but expose ``on``, ``connect``
    and ``fetch`` are accepted as virtual subclasses. ``off`` is optional;
    without it, closing the engine cannot detach its listeners.
    """

    _REQUIRED_METHODS = ("on", "connect", "fetch")

    @abstractmethod
    def connect(self) -> None:
        """Start connecting. Must not block; outcome is reported through events."""

    @abstractmethod
    async def fetch(self) -> Any:
        """
        Request a full copy of the remote data set.

        Must be safe to call repeatedly; it is the target of resync retries.

        Returns:
            The full snapshot

        Raises:
            Exception: Any failure, which the caller may retry
        """

    @classmethod
    def __subclasshook__(cls, subclass: type) -> bool:
        if cls is DataSourceAdapter:
            if all(
                callable(getattr(subclass, name, None)) for name in cls._REQUIRED_METHODS
            ):
                return True
        return NotImplemented
