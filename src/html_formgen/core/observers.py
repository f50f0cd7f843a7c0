"""
Ordered observer list.

Listeners are kept sorted by priority (highest first, registration order for
ties) and dispatch stops as soon as an event reports that its propagation was
stopped.

Usage:
    observers = ObserverList()
    observers.register(on_hide, priority=10)
    observers.dispatch(event)
"""

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Iterator, List

logger = logging.getLogger(__name__)


class StoppableEvent:
    """Base for events whose propagation listeners may stop."""

    def __init__(self):
        self._propagation_stopped = False

    def stop_propagation(self) -> None:
        self._propagation_stopped = True

    def is_propagation_stopped(self) -> bool:
        return self._propagation_stopped


@dataclass(order=True)
class _Registration:
    sort_key: tuple
    listener: Callable[[Any], None] = field(compare=False)


class ObserverList:
    """Priority-ordered listeners with short-circuit on stopped propagation."""

    def __init__(self):
        self._registrations: List[_Registration] = []
        self._sequence = count()

    def register(self, listener: Callable[[Any], None], priority: int = 0) -> None:
        """Add a listener. Higher priority runs earlier."""
        registration = _Registration((-priority, next(self._sequence)), listener)
        self._registrations.append(registration)
        self._registrations.sort()

    def unregister(self, listener: Callable[[Any], None]) -> bool:
        """Remove every registration of ``listener``. Returns True if one was removed."""
        before = len(self._registrations)
        self._registrations = [r for r in self._registrations if r.listener != listener]
        return len(self._registrations) != before

    def dispatch(self, event: Any) -> Any:
        """Call listeners in order until one stops propagation. Returns the event."""
        # Snapshot so listeners may (un)register during dispatch
        for registration in list(self._registrations):
            if isinstance(event, StoppableEvent) and event.is_propagation_stopped():
                logger.debug(f"[ObserverList] Propagation stopped before {registration.listener!r}")
                break
            registration.listener(event)
        return event

    def __len__(self) -> int:
        return len(self._registrations)

    def __bool__(self) -> bool:
        return bool(self._registrations)

    def __iter__(self) -> Iterator[Callable[[Any], None]]:
        return iter([r.listener for r in self._registrations])
