"""Base configuration class for form generation.

Provides hooks for applications to customize form generation behavior.
Per-form settings set through FormBuilder override these defaults.
"""

from typing import Optional
from dataclasses import dataclass, field

from html_formgen.animation.animation_config import AnimationConfig


@dataclass
class FormGenConfig:
    """Base configuration for form generation behavior.

    Applications can subclass this to provide custom configuration.

    Attributes:
        default_animation: Transition settings for forms that set none
        server_side_evaluation: Omit hidden dependents from markup instead of rendering them hidden
        wrap_scripts: Wrap generated controller code in <script> tags
        disable_hidden_inputs: Render inputs of hidden dependents with the disabled attribute
        logger_name: Root logger name used by configure_logging()
        debug_reactive: Log every cascade step of the reactive controllers at INFO
    """

    default_animation: AnimationConfig = field(default_factory=AnimationConfig)
    server_side_evaluation: bool = False
    wrap_scripts: bool = True
    disable_hidden_inputs: bool = True
    logger_name: str = "html_formgen"
    debug_reactive: bool = False


# Global config instance (set by application)
_form_config: Optional[FormGenConfig] = None


def set_form_config(config: FormGenConfig) -> None:
    """Set the global form generation configuration.

    Args:
        config: FormGenConfig instance
    """
    global _form_config
    _form_config = config


def get_form_config() -> FormGenConfig:
    """Get the current form generation configuration.

    Returns:
        Current FormGenConfig or default if not set
    """
    if _form_config is None:
        return FormGenConfig()
    return _form_config


def reset_form_config() -> None:
    """Drop the application config and fall back to defaults."""
    global _form_config
    _form_config = None
