"""
Element protocol definitions and application configuration.

ABC-based element contracts that eliminate duck typing in the reactive
layer, plus the application-wide FormGenConfig.
"""

from .element_protocols import (
    Styleable,
    InputControl,
    InputContainer,
    EventTarget,
    clear_input,
)
from .form_config import FormGenConfig, set_form_config, get_form_config, reset_form_config

__all__ = [
    "Styleable",
    "InputControl",
    "InputContainer",
    "EventTarget",
    "clear_input",
    "FormGenConfig",
    "set_form_config",
    "get_form_config",
    "reset_form_config",
]
