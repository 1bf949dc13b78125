"""Registry signals: error, warning, and ready.

``SignalBus`` holds the subscribers; ``RegistryState`` is the finite-state
record (ready flag, last error, last warning, deferred calls) whose
``publish()`` updates a field and notifies subscribers in one step.

Dispatch is synchronous and level-triggered: every publish of a non-null
error or warning, and every transition into ready, reaches the current
subscribers. A subscriber that raises is logged and skipped.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable
from enum import StrEnum
from typing import Any

logger = logging.getLogger("servelet.signals")

type Handler = Callable[..., Any]


class Signal(StrEnum):
    """Events exposed to subscribers."""

    ERROR = "error"
    WARNING = "warning"
    READY = "ready"


class SignalBus:
    """Ordered subscriber lists per signal.

    Handlers run in subscription order. The lock protects the subscriber
    lists only; handlers are called outside it so a handler may subscribe
    or unsubscribe without deadlocking.
    """

    __slots__ = ("_handlers", "_lock")

    def __init__(self) -> None:
        self._handlers: dict[Signal, list[Handler]] = {signal: [] for signal in Signal}
        self._lock = threading.Lock()

    def on(self, signal: Signal | str, handler: Handler) -> None:
        with self._lock:
            self._handlers[Signal(signal)].append(handler)

    def off(self, signal: Signal | str, handler: Handler) -> None:
        """Remove the most recent registration of ``handler``, if any."""
        with self._lock:
            handlers = self._handlers[Signal(signal)]
            for i in range(len(handlers) - 1, -1, -1):
                if handlers[i] == handler:
                    del handlers[i]
                    break

    def emit(self, signal: Signal, *payload: Any) -> None:
        with self._lock:
            handlers = list(self._handlers[signal])
        for handler in handlers:
            try:
                handler(*payload)
            except Exception:
                logger.exception("Unhandled exception in %r %s handler", signal.value, handler)

    def count(self, signal: Signal | str) -> int:
        with self._lock:
            return len(self._handlers[Signal(signal)])


class RegistryState:
    """Readiness, last error, last warning, and the deferred-call queue.

    Readiness is one-way: ``Initializing -> Ready``. The deferred queue is
    drained exactly once, in arrival order, by the publish that makes the
    registry ready. Calls deferred after that point run immediately.
    """

    __slots__ = ("_bus", "_error", "_pending", "_ready", "_warning")

    def __init__(self, bus: SignalBus) -> None:
        self._bus = bus
        self._ready = False
        self._error: BaseException | None = None
        self._warning: str | None = None
        self._pending: deque[Callable[[], Any]] = deque()

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def warning(self) -> str | None:
        return self._warning

    @property
    def pending(self) -> int:
        """Number of calls waiting for readiness."""
        return len(self._pending)

    def publish(self, signal: Signal, payload: Any = None) -> None:
        """Record a signal and notify subscribers.

        ``ERROR`` and ``WARNING`` replace the last value and notify when the
        new value is not ``None`` (``None`` clears silently). ``READY`` makes
        the registry ready, notifies, then replays every deferred call; a
        repeated ``READY`` is ignored.
        """
        match signal:
            case Signal.ERROR:
                self._error = payload
                if payload is not None:
                    logger.debug("error signal: %s", payload)
                    self._bus.emit(Signal.ERROR, payload)
            case Signal.WARNING:
                self._warning = payload
                if payload is not None:
                    logger.warning("%s", payload)
                    self._bus.emit(Signal.WARNING, payload)
            case Signal.READY:
                if self._ready:
                    return
                self._ready = True
                self._bus.emit(Signal.READY)
                self._drain()

    def defer(self, call: Callable[[], Any]) -> bool:
        """Queue ``call`` until ready. Returns ``False`` if already ready."""
        if self._ready:
            return False
        self._pending.append(call)
        return True

    def _drain(self) -> None:
        while self._pending:
            call = self._pending.popleft()
            try:
                call()
            except Exception:
                logger.exception("Deferred call %r failed during replay", call)
