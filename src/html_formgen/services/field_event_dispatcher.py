"""
Field Event Dispatcher.

Centralizes field lifecycle notifications (shown, hidden, dependency met/not
met, value change) so side policies such as toggling ``required`` subscribe
to transitions instead of being hard-wired into the evaluator.

Listeners are registered per field and event type, or globally for an event
type; field listeners run first, each list in priority order, and a listener
can stop propagation.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from html_formgen.core.observers import ObserverList, StoppableEvent

logger = logging.getLogger(__name__)

# Debug flag for verbose dispatcher logging
DEBUG_DISPATCHER = False


class FieldEventType(Enum):
    VALUE_CHANGE = "field.value_change"
    SHOW = "field.show"
    HIDE = "field.hide"
    ENABLE = "field.enable"
    DISABLE = "field.disable"
    PRE_RENDER = "field.pre_render"
    POST_RENDER = "field.post_render"
    DEPENDENCY_CHECK = "field.dependency_check"
    DEPENDENCY_MET = "field.dependency_met"
    DEPENDENCY_NOT_MET = "field.dependency_not_met"


class FieldEvent(StoppableEvent):
    """Event for one field. ``context`` carries event-specific data."""

    def __init__(self, field_name: str, event_type: FieldEventType, form: Any = None, **context: Any):
        super().__init__()
        self.field_name = field_name
        self.event_type = event_type
        self.form = form
        self.context: Dict[str, Any] = dict(context)

    def get(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    def set(self, key: str, value: Any) -> "FieldEvent":
        self.context[key] = value
        return self

    def has(self, key: str) -> bool:
        return key in self.context

    @property
    def visible(self) -> bool:
        return bool(self.context.get("visible", True))

    def set_visible(self, visible: bool) -> None:
        """Override visibility (meaningful for DEPENDENCY_CHECK)."""
        self.context["visible"] = visible

    def __repr__(self) -> str:
        return f"FieldEvent({self.field_name!r}, {self.event_type.value}, {self.context!r})"


Listener = Callable[[FieldEvent], None]


class FieldEventDispatcher:
    """Per-form registry of field lifecycle listeners."""

    def __init__(self):
        self._field_listeners: Dict[Tuple[str, FieldEventType], ObserverList] = {}
        self._global_listeners: Dict[FieldEventType, ObserverList] = {}

    def add_listener(
        self,
        event_type: FieldEventType,
        listener: Listener,
        field_name: Optional[str] = None,
        priority: int = 0,
    ) -> None:
        """Register a listener for one field, or for every field when ``field_name`` is None."""
        if field_name is None:
            observers = self._global_listeners.setdefault(event_type, ObserverList())
        else:
            observers = self._field_listeners.setdefault((field_name, event_type), ObserverList())
        observers.register(listener, priority)

    def remove_listener(self, event_type: FieldEventType, listener: Listener,
                        field_name: Optional[str] = None) -> bool:
        if field_name is None:
            observers = self._global_listeners.get(event_type)
        else:
            observers = self._field_listeners.get((field_name, event_type))
        return observers.unregister(listener) if observers is not None else False

    def has_listeners(self, event_type: FieldEventType, field_name: Optional[str] = None) -> bool:
        if self._global_listeners.get(event_type):
            return True
        return field_name is not None and bool(self._field_listeners.get((field_name, event_type)))

    def dispatch(self, field_name: str, event_type: FieldEventType, form: Any = None,
                 **context: Any) -> FieldEvent:
        """Create and dispatch an event. Returns it, possibly modified by listeners."""
        event = FieldEvent(field_name, event_type, form, **context)

        if DEBUG_DISPATCHER:
            logger.info(f"[FieldEventDispatcher] DISPATCH {event!r}")

        field_observers = self._field_listeners.get((field_name, event_type))
        if field_observers:
            field_observers.dispatch(event)

        global_observers = self._global_listeners.get(event_type)
        if global_observers and not event.is_propagation_stopped():
            global_observers.dispatch(event)

        return event


class RequiredToggler:
    """
    Clears a field's ``required`` flag while it is hidden and restores it when shown.

    Subscribe it to a dispatcher; it mutates the ``required`` attribute of the
    form's field config through ``set_required(name, flag)``.

    Example:
        toggler = RequiredToggler(form.set_required, ["company_name"])
        toggler.subscribe(form.dispatcher)
    """

    def __init__(self, set_required: Callable[[str, bool], None], field_names):
        self._set_required = set_required
        self._field_names = frozenset(field_names)

    def subscribe(self, dispatcher: FieldEventDispatcher) -> None:
        for name in self._field_names:
            dispatcher.add_listener(FieldEventType.SHOW, self._on_show, field_name=name)
            dispatcher.add_listener(FieldEventType.HIDE, self._on_hide, field_name=name)

    def _on_show(self, event: FieldEvent) -> None:
        self._set_required(event.field_name, True)

    def _on_hide(self, event: FieldEvent) -> None:
        logger.debug(f"[RequiredToggler] {event.field_name} hidden, clearing required")
        self._set_required(event.field_name, False)
