"""Declarative configuration for dependency show/hide transitions."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping
import logging

logger = logging.getLogger(__name__)


class AnimationType(Enum):
    NONE = "none"
    FADE = "fade"
    SLIDE = "slide"


@dataclass(frozen=True)
class AnimationConfig:
    """Transition tuning knobs, one per form."""

    enabled: bool = True
    type: AnimationType = AnimationType.FADE
    duration_ms: int = 300
    easing: str = "ease-in-out"

    def __post_init__(self):
        """Normalize string animation types and reject negative durations."""
        if not isinstance(self.type, AnimationType):
            try:
                object.__setattr__(self, "type", AnimationType(str(self.type).lower()))
            except ValueError:
                valid = [t.value for t in AnimationType]
                raise ValueError(f"Unknown animation type {self.type!r}. Valid types: {valid}")

        if self.duration_ms < 0:
            raise ValueError(f"Animation duration must be >= 0, got {self.duration_ms}")

    @property
    def is_instant(self) -> bool:
        """True when transitions collapse into a single synchronous mutation."""
        return not self.enabled or self.type is AnimationType.NONE

    def merged(self, options: Mapping[str, Any]) -> "AnimationConfig":
        """Return a copy with ``options`` applied (accepts ``duration`` as an alias)."""
        changes: Dict[str, Any] = dict(options)
        if "duration" in changes:
            changes["duration_ms"] = changes.pop("duration")
        unknown = set(changes) - {"enabled", "type", "duration_ms", "easing"}
        if unknown:
            raise ValueError(f"Unknown animation options: {sorted(unknown)}")
        logger.debug(f"[AnimationConfig] Merging options {changes}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form used by the generated client script."""
        return {
            "enabled": self.enabled,
            "type": self.type.value,
            "duration": self.duration_ms,
            "easing": self.easing,
        }
