"""
Core utilities.

Exceptions, ordered observers, the render-pass guard and timer schedulers.
No dependency on the rest of the package.
"""

from .exceptions import (
    FormGenError,
    FormConfigurationError,
    DependencyCycleError,
    TreeValidationError,
    DuplicateTreeValueError,
    TreeCycleError,
    DisabledNodeError,
)
from .observers import ObserverList, StoppableEvent
from .render_guard import RenderGuard, RenderContext, ScriptKind, sanitize_identifier
from .scheduler import Scheduler, TimerHandle, ImmediateScheduler, ManualScheduler

__all__ = [
    "FormGenError",
    "FormConfigurationError",
    "DependencyCycleError",
    "TreeValidationError",
    "DuplicateTreeValueError",
    "TreeCycleError",
    "DisabledNodeError",
    "ObserverList",
    "StoppableEvent",
    "RenderGuard",
    "RenderContext",
    "ScriptKind",
    "sanitize_identifier",
    "Scheduler",
    "TimerHandle",
    "ImmediateScheduler",
    "ManualScheduler",
]
