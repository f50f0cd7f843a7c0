"""
Executes AnimationPolicy plans against elements.

Each element has at most one running transition. Starting a new one cancels
the pending steps of the previous one, so re-showing an element that is
fading out never lets the stale hide finalize disable and clear its inputs.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from html_formgen.animation.animation_policy import NATURAL_HEIGHT, AnimationPolicy, AnimationStep, StepKind
from html_formgen.core.scheduler import ImmediateScheduler, Scheduler, TimerHandle
from html_formgen.protocols.element_protocols import InputContainer, Styleable, clear_input

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Styleable, bool], None]


class TransitionRunner:
    """
    Runs show/hide plans through a Scheduler.

    Args:
        policy: Step planner for the form's animation config
        scheduler: Timer source; ImmediateScheduler collapses every wait
        on_complete: Called with (element, visible) after a plan's FINALIZE
    """

    def __init__(self, policy: AnimationPolicy, scheduler: Optional[Scheduler] = None,
                 on_complete: Optional[CompletionCallback] = None):
        self.policy = policy
        self.scheduler = scheduler if scheduler is not None else ImmediateScheduler()
        self.on_complete = on_complete
        self._pending: Dict[int, TimerHandle] = {}
        self._targets: Dict[int, bool] = {}

    def show(self, element: Styleable) -> None:
        self.run(element, True)

    def hide(self, element: Styleable) -> None:
        self.run(element, False)

    def run(self, element: Styleable, visible: bool) -> None:
        """Start the show or hide plan for ``element``, replacing any running one."""
        self.cancel(element)
        self._targets[id(element)] = visible
        self._run_steps(element, visible, self.policy.plan(visible), 0)

    def cancel(self, element: Styleable) -> bool:
        """Cancel the element's pending steps. Returns True if something was pending."""
        handle = self._pending.pop(id(element), None)
        if handle is not None and handle.active:
            handle.cancel()
            logger.debug(f"[TransitionRunner] Cancelled pending transition of {element!r}")
            return True
        return False

    def is_running(self, element: Styleable) -> bool:
        handle = self._pending.get(id(element))
        return handle is not None and handle.active

    def target_of(self, element: Styleable) -> Optional[bool]:
        """Visibility the element is transitioning (or transitioned) to."""
        return self._targets.get(id(element))

    # --------------------------------------------------------------- internals

    def _run_steps(self, element: Styleable, visible: bool,
                   steps: Sequence[AnimationStep], start: int) -> None:
        for index in range(start, len(steps)):
            step = steps[index]
            if step.kind is StepKind.WAIT:
                handle = self.scheduler.call_later(
                    step.delay_ms, lambda: self._resume(element, visible, steps, index + 1)
                )
                # Synchronous schedulers have already run the rest of the plan
                if handle.active:
                    self._pending[id(element)] = handle
                return
            self._apply(element, step)
            if step.kind is StepKind.FINALIZE:
                self._pending.pop(id(element), None)
                if self.on_complete is not None:
                    self.on_complete(element, visible)

    def _resume(self, element: Styleable, visible: bool,
                steps: Sequence[AnimationStep], start: int) -> None:
        self._pending.pop(id(element), None)
        self._run_steps(element, visible, steps, start)

    def _apply(self, element: Styleable, step: AnimationStep) -> None:
        if step.kind is StepKind.ENABLE_INPUTS:
            for control in self._inputs(element):
                control.set_disabled(False)
            return

        for name, value in step.style.items():
            if value == NATURAL_HEIGHT:
                value = f"{element.content_height}px"
            element.set_style(name, value)

        if step.kind is StepKind.FINALIZE and step.disable_inputs:
            for control in self._inputs(element):
                control.set_disabled(True)
                clear_input(control)

    @staticmethod
    def _inputs(element: Styleable) -> List:
        if isinstance(element, InputContainer):
            return list(element.iter_inputs())
        return []
