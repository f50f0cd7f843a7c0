"""
Transition sequencing for dependent show/hide.

AnimationPolicy does not decide visibility. Given an AnimationConfig and a
show or hide request it produces the ordered steps a runner executes:

    show: ENABLE_INPUTS -> MUTATE_STYLE ... -> WAIT ... -> FINALIZE
    hide: MUTATE_STYLE ... -> WAIT ... -> FINALIZE(disable_inputs=True)

Guarantees:
- a hide plan always ends in a FINALIZE that disables and clears inputs
- a show plan enables inputs before any style mutation and its FINALIZE
  never touches inputs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from .animation_config import AnimationConfig, AnimationType

# Delay between the initial style and the target style so the browser
# registers the transition start.
REFLOW_DELAY_MS = 10

# Placeholder resolved by the runner to the element's content height in px.
NATURAL_HEIGHT = "{natural-height}"


class StepKind(Enum):
    ENABLE_INPUTS = "enable_inputs"
    MUTATE_STYLE = "mutate_style"
    WAIT = "wait"
    FINALIZE = "finalize"


@dataclass(frozen=True)
class AnimationStep:
    kind: StepKind
    style: Dict[str, str] = field(default_factory=dict)
    delay_ms: int = 0
    disable_inputs: bool = False


def _mutate(**style: str) -> AnimationStep:
    return AnimationStep(StepKind.MUTATE_STYLE, style={k.replace("_", "-"): v for k, v in style.items()})


def _wait(delay_ms: int) -> AnimationStep:
    return AnimationStep(StepKind.WAIT, delay_ms=delay_ms)


def _finalize(disable_inputs: bool, **style: str) -> AnimationStep:
    return AnimationStep(
        StepKind.FINALIZE,
        style={k.replace("_", "-"): v for k, v in style.items()},
        disable_inputs=disable_inputs,
    )


class AnimationPolicy:
    """Builds show/hide step sequences for one form's AnimationConfig."""

    def __init__(self, config: AnimationConfig):
        self.config = config

    def _transition(self, *properties: str) -> str:
        d, e = self.config.duration_ms, self.config.easing
        return ", ".join(f"{prop} {d}ms {e}" for prop in properties)

    def plan(self, visible: bool) -> Tuple[AnimationStep, ...]:
        return self.plan_show() if visible else self.plan_hide()

    def plan_show(self) -> Tuple[AnimationStep, ...]:
        enable = AnimationStep(StepKind.ENABLE_INPUTS)
        duration = self.config.duration_ms

        if self.config.is_instant:
            return (
                enable,
                _mutate(display="", opacity="1"),
                _finalize(False),
            )

        if self.config.type is AnimationType.FADE:
            return (
                enable,
                _mutate(display="", opacity="0", transition=self._transition("opacity")),
                _wait(REFLOW_DELAY_MS),
                _mutate(opacity="1"),
                _wait(duration),
                _finalize(False),
            )

        # slide
        return (
            enable,
            _mutate(
                display="",
                max_height="0",
                overflow="hidden",
                opacity="0",
                transition=self._transition("max-height", "opacity"),
            ),
            _wait(REFLOW_DELAY_MS),
            _mutate(max_height=NATURAL_HEIGHT, opacity="1"),
            _wait(duration),
            _finalize(False, max_height="", overflow=""),
        )

    def plan_hide(self) -> Tuple[AnimationStep, ...]:
        duration = self.config.duration_ms

        if self.config.is_instant:
            return (
                _mutate(display="none"),
                _finalize(True),
            )

        if self.config.type is AnimationType.FADE:
            return (
                _mutate(opacity="0", transition=self._transition("opacity")),
                _wait(duration),
                _finalize(True, display="none"),
            )

        # slide
        return (
            _mutate(
                max_height=NATURAL_HEIGHT,
                overflow="hidden",
                transition=self._transition("max-height", "opacity"),
            ),
            _wait(REFLOW_DELAY_MS),
            _mutate(max_height="0", opacity="0"),
            _wait(duration),
            _finalize(True, display="none", max_height="", overflow=""),
        )

    def total_duration_ms(self, visible: bool) -> int:
        """Sum of all waits in the plan."""
        return sum(step.delay_ms for step in self.plan(visible) if step.kind is StepKind.WAIT)
