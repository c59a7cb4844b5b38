"""In-process event bus for delivery signals."""

import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class EventBus:
    """Dispatch signals to listeners subscribed to their exact type.

    Listeners may be plain functions or coroutines; exceptions propagate to
    the dispatcher so the delivery pipeline can record them.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)
        self._signal_types: dict[str, type] = {}

    def subscribe(self, signal_type: type, listener: Listener) -> None:
        self._listeners[signal_type].append(listener)

    def unsubscribe(self, signal_type: type, listener: Listener) -> None:
        listeners = self._listeners.get(signal_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def listen(self, signal_type: type) -> Callable[[Listener], Listener]:
        """Decorator form of :meth:`subscribe`."""

        def _decorator(listener: Listener) -> Listener:
            self.subscribe(signal_type, listener)
            return listener

        return _decorator

    def listeners(self, signal_type: type) -> list[Listener]:
        return list(self._listeners.get(signal_type, []))

    def register_signal_type(self, name: str, signal_type: type) -> None:
        """Make ``name`` usable as a target in the event mapping table."""
        self._signal_types[name] = signal_type

    def resolve_signal_type(self, identifier: str) -> type:
        """Resolve a mapping target: registered name first, then dotted import path.

        Raises LookupError when neither resolves.
        """
        registered = self._signal_types.get(identifier)
        if registered is not None:
            return registered
        if "." in identifier:
            import importlib

            module_path, _, attr = identifier.rpartition(".")
            try:
                candidate = getattr(importlib.import_module(module_path), attr)
            except (ImportError, AttributeError) as exc:
                raise LookupError(f"Signal type [{identifier}] not found") from exc
            if isinstance(candidate, type):
                return candidate
        raise LookupError(f"Signal type [{identifier}] not found")

    async def dispatch(self, signal: Any) -> None:
        for listener in self.listeners(type(signal)):
            result = listener(signal)
            if inspect.isawaitable(result):
                await result


# Default process-wide bus; listener modules subscribe here at import time.
event_bus = EventBus()
