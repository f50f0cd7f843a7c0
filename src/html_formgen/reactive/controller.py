"""
Reactive dependency controller.

Runs the client-side show/hide algorithm against an element tree. It is the
Python twin of the generated FormGen_<id> script and follows the same rules
as the server-side VisibilityEvaluator:

1. A change on a controller re-evaluates the controller's whole group: the
   active identifiers of every reachable controller in the group are
   unioned and each dependent of the group is matched against them.
2. An empty reachable select in the group hides every dependent of the group.
3. A dependent that is shown has the groups nested inside it re-evaluated
   depth first (chains A -> B -> C converge in one handler turn).
4. A dependent that is hidden makes everything inside it unreachable; the
   nested groups are re-evaluated and therefore hidden as well.
5. Showing enables inputs before the transition; hiding disables and clears
   them when the transition finishes.

A controller is reachable iff no dependent wrapper containing it is hidden.
A group is never re-entered while its own cascade is running.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from html_formgen.animation.animation_config import AnimationConfig
from html_formgen.animation.animation_policy import AnimationPolicy
from html_formgen.core.scheduler import Scheduler
from html_formgen.dependencies.declaration import ALL_SENTINEL
from html_formgen.protocols.form_config import get_form_config
from html_formgen.reactive.dom import Document, DomEvent, Element
from html_formgen.reactive.transition_runner import TransitionRunner
from html_formgen.services.field_event_dispatcher import FieldEventDispatcher, FieldEventType
from html_formgen.services.flag_context_manager import FlagContextManager

logger = logging.getLogger(__name__)

# Debug flag for verbose cascade tracing
DEBUG_REACTIVE = False

CONTROLLER_SELECTOR = '[data-dependency="true"]'
DEPENDENT_MARKER = "data-dependends"

SHOWN_EVENT = "formgen:shown"
HIDDEN_EVENT = "formgen:hidden"

# Dispatched by RepeaterController after a row was cloned from its template
ROW_ADDED_EVENT = "repeater:add"


class ReactiveController:
    """
    Binds one rendered form and keeps its dependents in sync with its controllers.

    Example:
        controller = ReactiveController(rendered.document, "signup", scheduler=ManualScheduler())
        controller.init()
        account_type.change("business")
    """

    def __init__(self, document: Document, form_id: str,
                 animation: Optional[AnimationConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 dispatcher: Optional[FieldEventDispatcher] = None):
        self.document = document
        self.form_id = form_id
        self.animation = animation if animation is not None else get_form_config().default_animation
        self.dispatcher = dispatcher
        self.form: Optional[Element] = None

        self.runner = TransitionRunner(AnimationPolicy(self.animation), scheduler, self._on_transition_complete)
        self._instant_runner = TransitionRunner(
            AnimationPolicy(AnimationConfig(enabled=False)), None, self._on_transition_complete
        )

        self._visible: Dict[int, bool] = {}
        self._cascade_stack: List[str] = []
        self._bound: List[Tuple[Element, str, Callable[[DomEvent], None]]] = []
        self._evaluating = False
        self._initializing = False

    @property
    def debug(self) -> bool:
        """Cascade tracing, switched on by DEBUG_REACTIVE or FormGenConfig.debug_reactive."""
        return DEBUG_REACTIVE or get_form_config().debug_reactive

    # --------------------------------------------------------------- lifecycle

    def init(self) -> bool:
        """Bind change listeners and derive the initial state. Returns False if the form is missing."""
        if self.form is not None:
            logger.debug(f"[ReactiveController] Form '{self.form_id}' already initialized")
            return True

        form = self.document.get_element_by_id(self.form_id)
        if form is None:
            logger.warning(f"[ReactiveController] Form not found: #{self.form_id}")
            return False
        self.form = form

        for dependent in form.query_selector_all(f"[{DEPENDENT_MARKER}]"):
            self._visible[id(dependent)] = dependent.get_style("display") != "none"

        controllers = form.query_selector_all(CONTROLLER_SELECTOR)
        for controller in controllers:
            self._listen(controller, "change", self._on_change)
        self._listen(form, ROW_ADDED_EVENT, self._on_row_added)

        with FlagContextManager.initializing(self):
            self._detect_initial_state()

        logger.debug(f"[ReactiveController] Initialized '{self.form_id}' with {len(controllers)} controllers")
        return True

    def destroy(self) -> None:
        """Unbind every listener and cancel pending transitions."""
        for element, event_type, listener in self._bound:
            element.remove_event_listener(event_type, listener)
        self._bound.clear()
        if self.form is not None:
            for dependent in self.form.query_selector_all(f"[{DEPENDENT_MARKER}]"):
                self.runner.cancel(dependent)
        self.form = None

    def _listen(self, element: Element, event_type: str, listener: Callable[[DomEvent], None]) -> None:
        element.add_event_listener(event_type, listener)
        self._bound.append((element, event_type, listener))

    def bind_within(self, container: Element) -> None:
        """
        Adopt markup added after init, such as a repeater row.

        Unbound controllers inside ``container`` get change listeners and the
        groups touching it are re-evaluated. Inputs of a container that sits
        in a hidden dependent are disabled.
        """
        if self.form is None:
            logger.warning(f"[ReactiveController] bind_within before init on '{self.form_id}'")
            return
        bound = {id(element) for element, _, _ in self._bound}
        for dependent in container.query_selector_all(f"[{DEPENDENT_MARKER}]"):
            self._visible.setdefault(id(dependent), dependent.get_style("display") != "none")
        for controller in container.query_selector_all(CONTROLLER_SELECTOR):
            if id(controller) not in bound:
                self._listen(controller, "change", self._on_change)

        if not self.is_reachable(container):
            for control in container.iter_inputs():
                control.set_disabled(True)
        self._reevaluate_within(container)

    def _on_row_added(self, event: DomEvent) -> None:
        row = (event.detail or {}).get("row")
        if isinstance(row, Element):
            if self.debug:
                logger.info(f"[ReactiveController] ROW ADDED {row.describe()} index={event.detail.get('index')}")
            self.bind_within(row)

    def _detect_initial_state(self) -> None:
        """Re-derive every group so pre-filled forms need no interaction."""
        seen: Set[str] = set()
        for controller in self.form.query_selector_all(CONTROLLER_SELECTOR):
            group = controller.get_attribute("data-dependency-group")
            if group and group not in seen:
                seen.add(group)
                self._run_group(group)

    # ----------------------------------------------------------------- events

    def _on_change(self, event: DomEvent) -> None:
        self.handle_dependency(event.current_target)

    def handle_dependency(self, element: Element) -> None:
        """Re-evaluate the group ``element`` controls."""
        if self.form is None:
            logger.warning(f"[ReactiveController] handle_dependency before init on '{self.form_id}'")
            return

        group = element.get_attribute("data-dependency-group")
        field = element.get_attribute("data-dependency-field")
        if not group or not field:
            logger.warning(f"[ReactiveController] {element.describe()} lacks dependency group/field attributes")
            return

        if self.debug:
            logger.info(f"[ReactiveController] CHANGE {field} in group '{group}' value={element.get_value()!r}")
        self._run_group(group)

    def _run_group(self, group: str) -> None:
        if group in self._cascade_stack:
            if self.debug:
                logger.warning(f"[ReactiveController] BLOCKED re-entry of group '{group}' ({self._cascade_stack})")
            return

        self._cascade_stack.append(group)
        try:
            with FlagContextManager.manage_flags(self, _evaluating=True):
                self._evaluate_group(group)
        finally:
            self._cascade_stack.pop()

    # ------------------------------------------------------------- evaluation

    def _evaluate_group(self, group: str) -> None:
        dependents = self.form.query_selector_all(f'[data-dependend-group="{group}"]')
        if not dependents:
            logger.warning(f"[ReactiveController] No dependents found for group '{group}' in '{self.form_id}'")
            return

        identifiers, reset = self.group_state(group)
        if self.debug:
            logger.info(f"[ReactiveController]   group '{group}' identifiers={sorted(identifiers)} reset={reset}")

        for dependent in dependents:
            triggers = (dependent.get_attribute("data-dependend") or "").split()
            if not triggers:
                continue
            should_show = (
                not reset
                and bool(identifiers)
                and (ALL_SENTINEL in triggers or any(t in identifiers for t in triggers))
                and self._enclosing_visible(dependent)
            )
            if should_show:
                self._show(dependent)
            else:
                self._hide(dependent)
            self._reevaluate_within(dependent)

    def group_state(self, group: str) -> Tuple[FrozenSet[str], bool]:
        """Active identifiers of the group's reachable controllers, and whether an empty select resets it."""
        identifiers: Set[str] = set()
        reset = False
        for controller in self.form.query_selector_all(f'[data-dependency-group="{group}"]'):
            if controller.get_attribute("data-dependency") != "true" or not self.is_reachable(controller):
                continue
            field = controller.get_attribute("data-dependency-field") or ""
            kind = controller.element_type

            if kind == "select":
                value = controller.get_value()
                if isinstance(value, list):
                    identifiers.update(f"{field}-{v}" for v in value if v)
                elif value == "":
                    reset = True
                else:
                    identifiers.add(f"{field}-{value}")
            elif kind in ("checkbox", "radio"):
                if controller.is_checked():
                    value = controller.get_value()
                    identifiers.add(f"{field}-{value}" if value else field)
            elif kind == "hidden":
                value = controller.get_value()
                identifiers.add(f"{field}-{value}" if value else field)
            else:
                value = controller.get_value()
                if value:
                    identifiers.add(f"{field}-{value}")
        return frozenset(identifiers), reset

    def _reevaluate_within(self, container: Element) -> None:
        """Depth-first re-evaluation of every group with a controller or dependent inside ``container``."""
        groups: List[str] = []
        for element in container.find_all(True):
            if element.get_attribute("data-dependency") == "true":
                group = element.get_attribute("data-dependency-group")
            elif element.has_attribute(DEPENDENT_MARKER):
                group = element.get_attribute("data-dependend-group")
            else:
                continue
            if group and group not in groups:
                groups.append(group)
        for group in groups:
            self._run_group(group)

    def is_visible(self, element: Element) -> bool:
        """Logical visibility of a dependent wrapper (the transition target, not the current style)."""
        return self._visible.get(id(element), element.get_style("display") != "none")

    def is_reachable(self, element: Element) -> bool:
        return all(
            self.is_visible(node) for node in (element, *element.ancestors())
            if node.has_attribute(DEPENDENT_MARKER)
        )

    def _enclosing_visible(self, dependent: Element) -> bool:
        return all(
            self.is_visible(node) for node in dependent.ancestors()
            if node.has_attribute(DEPENDENT_MARKER)
        )

    def visibility(self) -> Dict[str, bool]:
        """Logical visibility per ``data-field`` name of every dependent wrapper."""
        if self.form is None:
            return {}
        return {
            dependent.get_attribute("data-field"): self.is_visible(dependent)
            for dependent in self.form.query_selector_all(f"[{DEPENDENT_MARKER}]")
            if dependent.get_attribute("data-field")
        }

    # ------------------------------------------------------------ transitions

    def _active_runner(self) -> TransitionRunner:
        return self._instant_runner if self._initializing else self.runner

    def _show(self, dependent: Element) -> None:
        if self._visible.get(id(dependent)) is True:
            return
        self._visible[id(dependent)] = True
        self.runner.cancel(dependent)
        self._active_runner().show(dependent)
        self._notify(dependent, FieldEventType.SHOW)

    def _hide(self, dependent: Element) -> None:
        if self._visible.get(id(dependent)) is False:
            return
        self._visible[id(dependent)] = False
        self.runner.cancel(dependent)
        self._active_runner().hide(dependent)
        self._notify(dependent, FieldEventType.HIDE)

    def _notify(self, dependent: Element, event_type: FieldEventType) -> None:
        name = dependent.get_attribute("data-field")
        if self.debug:
            logger.info(f"[ReactiveController]   {event_type.value} {name or dependent.describe()}")
        if self.dispatcher is not None and name:
            self.dispatcher.dispatch(name, event_type, self, initializing=self._initializing)

    def _on_transition_complete(self, element: Any, visible: bool) -> None:
        if isinstance(element, Element):
            element.dispatch_event(DomEvent(SHOWN_EVENT if visible else HIDDEN_EVENT, bubbles=True))
