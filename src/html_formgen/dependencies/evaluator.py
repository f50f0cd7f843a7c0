"""
Server-side visibility evaluation.

VisibilityEvaluator decides, for one snapshot of field values, which
dependents are visible. Dependents are visited in topological order, so a
controller's reachability is always known when its dependents are decided
and every declaration is evaluated exactly once:

    visible(D) = all enclosing dependents of D visible
                 and no reachable select controller of D's group is empty
                 and some declaration of D matches a reachable controller

A controller is reachable iff every dependent that contains it (itself
included) is visible, so hiding a field hides everything its controllers
drive regardless of stale trigger matches.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from html_formgen.dependencies.declaration import (
    DependencyDeclaration,
    Field,
    active_identifiers,
    is_empty_select,
)
from html_formgen.dependencies.graph import DependencyGraph
from html_formgen.services.field_event_dispatcher import FieldEventDispatcher, FieldEventType
from html_formgen.services.flag_context_manager import FlagContextManager

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class EvaluationResult:
    """Outcome of one evaluation pass."""
    visibility: Dict[str, bool] = field(default_factory=dict)
    active: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    reset_groups: List[str] = field(default_factory=list)

    def is_visible(self, name: str) -> bool:
        """Fields the evaluator never saw are visible (they depend on nothing)."""
        return self.visibility.get(name, True)

    @property
    def visible_fields(self) -> List[str]:
        return [name for name, visible in self.visibility.items() if visible]

    @property
    def hidden_fields(self) -> List[str]:
        return [name for name, visible in self.visibility.items() if not visible]

    def changed_from(self, previous: Mapping[str, bool]) -> Dict[str, bool]:
        """Fields whose visibility differs from ``previous``."""
        return {
            name: visible for name, visible in self.visibility.items()
            if previous.get(name, True) != visible
        }


class VisibilityEvaluator:
    """
    Evaluates a DependencyGraph against value snapshots.

    Lifecycle signals for each dependent, in order: DEPENDENCY_CHECK
    (listeners may override via ``event.set_visible``), DEPENDENCY_MET or
    DEPENDENCY_NOT_MET, then SHOW or HIDE. Fields nested in a dependent
    group receive SHOW/HIDE as well.

    Example:
        evaluator = VisibilityEvaluator(DependencyGraph(declarations, fields))
        result = evaluator.evaluate({"account_type": "business"})
        result.is_visible("company_size")  # True
    """

    def __init__(self, graph: DependencyGraph, dispatcher: Optional[FieldEventDispatcher] = None,
                 form: Any = None):
        self.graph = graph
        self.dispatcher = dispatcher
        self.form = form
        self._evaluating = False

    def evaluate(self, values: Mapping[str, Any],
                 previous: Optional[Mapping[str, bool]] = None) -> EvaluationResult:
        """
        Decide visibility for every dependent and every field they contain.

        Args:
            values: Snapshot of field values. Missing controllers are inactive.
            previous: Visibility of an earlier pass. When given, SHOW/HIDE are
                only dispatched for fields whose visibility changed.
        """
        if self._evaluating:
            raise RuntimeError("VisibilityEvaluator.evaluate() is not re-entrant")

        with FlagContextManager.manage_flags(self, _evaluating=True):
            result = EvaluationResult()
            for dependent in self.graph.evaluation_order:
                self._evaluate_dependent(dependent, values, result)
            self._propagate_to_nested_fields(result)
            self._dispatch_transitions(result, previous)

        logger.debug(
            f"[VisibilityEvaluator] visible={result.visible_fields} hidden={result.hidden_fields}"
        )
        return result

    # --------------------------------------------------------------- internals

    @staticmethod
    def _value_of(name: str, values: Mapping[str, Any]) -> Any:
        return values[name] if name in values else _MISSING

    def _is_reachable(self, controller: str, result: EvaluationResult) -> bool:
        return all(result.visibility.get(d, False) for d in self.graph.containing_dependents(controller))

    def _group_state(self, group: str, values: Mapping[str, Any], result: EvaluationResult):
        """Active identifiers of the group's reachable controllers, and the reset flag."""
        identifiers = set()
        reset = False
        for controller in self.graph.controllers_in_group(group):
            if not self.graph.is_known_controller(controller):
                continue
            if not self._is_reachable(controller, result):
                continue
            value = self._value_of(controller, values)
            if value is _MISSING:
                continue
            kind = self.graph.kind_of(controller, value)
            if is_empty_select(kind, value):
                reset = True
            identifiers.update(active_identifiers(controller, kind, value, self.graph.option_value_of(controller)))
        return frozenset(identifiers), reset

    def _evaluate_dependent(self, dependent: str, values: Mapping[str, Any],
                            result: EvaluationResult) -> None:
        group = self.graph.group_of(dependent)
        if group not in result.active:
            identifiers, reset = self._group_state(group, values, result)
            result.active[group] = identifiers
            if reset:
                result.reset_groups.append(group)
        identifiers = result.active[group]

        met = group not in result.reset_groups and any(
            self._matches(decl, identifiers) for decl in self.graph.declarations_for(dependent)
        )

        if self.dispatcher is not None:
            event = self.dispatcher.dispatch(
                dependent, FieldEventType.DEPENDENCY_CHECK, self.form,
                visible=met, identifiers=identifiers, group=group,
            )
            met = event.visible
            self.dispatcher.dispatch(
                dependent,
                FieldEventType.DEPENDENCY_MET if met else FieldEventType.DEPENDENCY_NOT_MET,
                self.form, group=group,
            )

        enclosing = self.graph.containing_dependents(dependent, include_self=False)
        result.visibility[dependent] = met and all(result.visibility.get(d, False) for d in enclosing)

    def _matches(self, decl: DependencyDeclaration, identifiers: FrozenSet[str]) -> bool:
        if not self.graph.is_known_controller(decl.controller_field):
            return False
        return decl.matches(identifiers)

    def _propagate_to_nested_fields(self, result: EvaluationResult) -> None:
        for name in self.graph.fields:
            if name in result.visibility:
                continue
            gates = self.graph.containing_dependents(name, include_self=False)
            if gates:
                result.visibility[name] = all(result.visibility[g] for g in gates)

    def _dispatch_transitions(self, result: EvaluationResult,
                              previous: Optional[Mapping[str, bool]]) -> None:
        if self.dispatcher is None:
            return
        changes = result.visibility if previous is None else result.changed_from(previous)
        for name, visible in changes.items():
            self.dispatcher.dispatch(
                name, FieldEventType.SHOW if visible else FieldEventType.HIDE, self.form,
            )


def evaluate(declarations: Iterable[DependencyDeclaration], values: Mapping[str, Any],
             fields: Optional[Iterable[Field]] = None) -> Dict[str, bool]:
    """Evaluate declarations against a snapshot and return per-field visibility."""
    field_map = {f.name: f for f in fields} if fields is not None else None
    graph = DependencyGraph(declarations, field_map)
    return VisibilityEvaluator(graph).evaluate(values).visibility
