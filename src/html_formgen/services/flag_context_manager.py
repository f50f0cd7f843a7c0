"""
Context manager factory for boolean flag management.

Reactive controllers carry a few boolean flags (evaluating, initializing)
that must be restored even when a listener raises. Instead of:

    self._initializing = True
    try:
        ...
    finally:
        self._initializing = False

use:

    with FlagContextManager.manage_flags(self, _initializing=True):
        ...
"""

from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Set
import logging

logger = logging.getLogger(__name__)


class ControllerFlag(Enum):
    """
    Registry of valid reactive controller flags.

    Serves as documentation, validation for FlagContextManager and type-safe
    flag references. Add new flags here as they are introduced.
    """
    EVALUATING = '_evaluating'
    INITIALIZING = '_initializing'


class FlagContextManager:
    """
    Context manager factory that sets flags on entry and restores them on exit.

    Examples:
        with FlagContextManager.manage_flags(controller, _evaluating=True):
            controller._toggle_dependents(...)

        with FlagContextManager.initializing(controller):
            controller._detect_initial_state()
    """

    VALID_FLAGS: Set[str] = {flag.value for flag in ControllerFlag}

    @staticmethod
    @contextmanager
    def manage_flags(obj: Any, **flags: bool):
        """
        Set flags on entry and restore previous values on exit, even on exception.

        Raises:
            ValueError: If any flag name is not in VALID_FLAGS
        """
        invalid_flags = set(flags.keys()) - FlagContextManager.VALID_FLAGS
        if invalid_flags:
            raise ValueError(
                f"Invalid flags: {invalid_flags}. "
                f"Valid flags: {FlagContextManager.VALID_FLAGS}. "
                f"Add new flags to ControllerFlag enum."
            )

        # Direct attribute access: every flag must be initialized in __init__
        prev_values: Dict[str, bool] = {}
        for flag_name in flags:
            prev_values[flag_name] = getattr(obj, flag_name)

        for flag_name, flag_value in flags.items():
            setattr(obj, flag_name, flag_value)
            logger.debug(f"Setting flag {flag_name}={flag_value} on {type(obj).__name__}")

        try:
            yield
        finally:
            for flag_name, prev_value in prev_values.items():
                setattr(obj, flag_name, prev_value)

    @staticmethod
    @contextmanager
    def initializing(obj: Any):
        """Mark ``obj`` as initializing for the duration of the block."""
        with FlagContextManager.manage_flags(obj, **{ControllerFlag.INITIALIZING.value: True}):
            yield

    @staticmethod
    def is_flag_set(obj: Any, flag: ControllerFlag) -> bool:
        return getattr(obj, flag.value)

    @staticmethod
    def get_flag_state(obj: Any) -> Dict[str, bool]:
        """Current state of all registered flags, for debugging."""
        return {flag.value: getattr(obj, flag.value) for flag in ControllerFlag}
