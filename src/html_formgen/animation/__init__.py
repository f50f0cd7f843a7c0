"""
Animation configuration and transition sequencing.

Decides *when* DOM mutation and input enable/disable happen relative to a
show/hide transition. Never decides visibility itself.
"""

from .animation_config import AnimationConfig, AnimationType
from .animation_policy import (
    AnimationPolicy,
    AnimationStep,
    StepKind,
    NATURAL_HEIGHT,
    REFLOW_DELAY_MS,
)

__all__ = [
    "AnimationConfig",
    "AnimationType",
    "AnimationPolicy",
    "AnimationStep",
    "StepKind",
    "NATURAL_HEIGHT",
    "REFLOW_DELAY_MS",
]
