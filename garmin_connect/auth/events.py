"""Session change notifications."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    SESSION_CHANGE = "sessionChange"


@dataclass(frozen=True)
class SessionChange:
    """Payload delivered with SESSION_CHANGE.

    ``reason`` is one of ``login``, ``refresh``, ``logout`` or ``load``.
    ``tokens`` is the exported token pair, or None after a logout.
    """

    reason: str
    tokens: Any = None


@dataclass(frozen=True)
class Subscription:
    kind: EventKind
    id: int


class EventBus:
    """Synchronous, ordered delivery of events to registered handlers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[EventKind, Dict[int, Callable[[Any], None]]] = {}
        self._next_id = 0

    def subscribe(self, kind: EventKind, handler: Callable[[Any], None]) -> Subscription:
        kind = EventKind(kind)
        with self._lock:
            self._next_id += 1
            self._handlers.setdefault(kind, {})[self._next_id] = handler
            return Subscription(kind, self._next_id)

    def unsubscribe(self, subscription: Subscription) -> bool:
        with self._lock:
            handlers = self._handlers.get(subscription.kind, {})
            return handlers.pop(subscription.id, None) is not None

    def emit(self, kind: EventKind, payload: Any = None) -> None:
        with self._lock:
            # dicts keep insertion order, so this is subscription order
            handlers: List[Callable[[Any], None]] = list(self._handlers.get(kind, {}).values())

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.warning(f"{kind.value} handler {handler!r} failed: {e}")
