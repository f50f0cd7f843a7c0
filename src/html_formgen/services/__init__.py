"""
Service layer.

Cross-cutting concerns shared by the server-side evaluator and the reactive
controllers: field lifecycle dispatch and flag management.
"""

from .field_event_dispatcher import (
    FieldEvent,
    FieldEventType,
    FieldEventDispatcher,
    RequiredToggler,
)
from .flag_context_manager import FlagContextManager, ControllerFlag

__all__ = [
    "FieldEvent",
    "FieldEventType",
    "FieldEventDispatcher",
    "RequiredToggler",
    "FlagContextManager",
    "ControllerFlag",
]
