"""Named-event listener registry shared by data sources and the sync engine.

Listeners run synchronously, in registration order, on the emitter's caller.
Exceptions raised by a listener propagate to whoever called ``emit``.
"""

from enum import Enum
from typing import Any, Callable

Listener = Callable[..., Any]


def event_name(event: str | Enum) -> str:
    """Normalize an event given as a string or a string-valued enum member."""
    if isinstance(event, Enum):
        return str(event.value)
    return event


class EventEmitter:
    """Minimal in-process event emitter."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str | Enum, listener: Listener) -> None:
        """Register a listener for an event."""
        if not callable(listener):
            raise TypeError(f"Listener for {event_name(event)!r} must be callable")
        self._listeners.setdefault(event_name(event), []).append(listener)

    def once(self, event: str | Enum, listener: Listener) -> None:
        """Register a listener removed after its first invocation."""

        def _once(*args: Any) -> Any:
            self.off(event, _once)
            return listener(*args)

        _once.__wrapped__ = listener  # type: ignore[attr-defined]
        self.on(event, _once)

    def off(self, event: str | Enum, listener: Listener) -> None:
        """Remove a previously registered listener. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_name(event))
        if not listeners:
            return
        for index, registered in enumerate(listeners):
            # Equality, not identity: bound methods are recreated on each access
            if registered == listener or getattr(registered, "__wrapped__", None) == listener:
                del listeners[index]
                break

    def emit(self, event: str | Enum, *args: Any) -> bool:
        """
        Invoke every listener registered for an event.

        Args:
            event: Event name
            *args: Positional payload passed to each listener

        Returns:
            True if at least one listener was invoked
        """
        # Copy so listeners can (un)subscribe while being notified
        listeners = list(self._listeners.get(event_name(event), ()))
        for listener in listeners:
            listener(*args)
        return bool(listeners)

    def listeners(self, event: str | Enum) -> list[Listener]:
        """Return a copy of the listeners registered for an event."""
        return list(self._listeners.get(event_name(event), ()))

    def listener_count(self, event: str | Enum) -> int:
        return len(self._listeners.get(event_name(event), ()))
