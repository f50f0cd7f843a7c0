"""
Dependency graph over a form's declarations.

Nodes are dependents (fields or field groups). An edge X -> Y means Y's
visibility can only be decided after X's: either a controller of Y sits
inside X (X contains the controller, X itself included), or X is a field
group enclosing Y. The graph must be a DAG; cycles are rejected when the
graph is built so evaluation always terminates.
"""

import logging
from graphlib import CycleError, TopologicalSorter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from html_formgen.core.exceptions import DependencyCycleError, FormConfigurationError
from html_formgen.dependencies.declaration import (
    DependencyDeclaration,
    Field,
    FieldKind,
    infer_kind,
)

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Validated, indexed view of a form's dependency declarations.

    Args:
        declarations: Dependency edges in declaration order
        fields: Known fields by name. When omitted, containment is empty and
            controller kinds are inferred from snapshot values.

    Raises:
        FormConfigurationError: A dependent declared against two groups, or a
            controller bound to a group other than its own
        DependencyCycleError: The declarations and field containment form a cycle
    """

    def __init__(self, declarations: Iterable[DependencyDeclaration],
                 fields: Optional[Mapping[str, Field]] = None):
        self.declarations: Tuple[DependencyDeclaration, ...] = tuple(declarations)
        self.fields: Dict[str, Field] = dict(fields or {})

        self._by_dependent: Dict[str, List[DependencyDeclaration]] = {}
        self._groups: Dict[str, List[str]] = {}
        self._group_controllers: Dict[str, List[str]] = {}
        self._unknown_controllers: Set[str] = set()

        self._index()
        self._order = self._topological_order()

    # ------------------------------------------------------------------ index

    def _index(self) -> None:
        for decl in self.declarations:
            existing = self._by_dependent.setdefault(decl.dependent_field, [])
            if existing and existing[0].group != decl.group:
                raise FormConfigurationError(
                    f"Field '{decl.dependent_field}' is declared against groups "
                    f"'{existing[0].group}' and '{decl.group}'; a dependent belongs to one group"
                )
            existing.append(decl)

            dependents = self._groups.setdefault(decl.group, [])
            if decl.dependent_field not in dependents:
                dependents.append(decl.dependent_field)

            self._bind_controller(decl.controller_field, decl.group)

        # A controller without an explicit group takes the group its declarations use
        for field in self.fields.values():
            if not field.is_controller:
                continue
            if field.controller_group is not None or self.group_of_controller(field.name) is None:
                self._bind_controller(field.name, field.group)

    def _bind_controller(self, controller: str, group: str) -> None:
        if self.fields:
            field = self.fields.get(controller)
            if field is None:
                if controller not in self._unknown_controllers:
                    logger.warning(
                        f"[DependencyGraph] Controller '{controller}' is not a field of this form; "
                        f"its dependents stay hidden"
                    )
                self._unknown_controllers.add(controller)
            elif field.controller_group is not None and field.controller_group != group:
                raise FormConfigurationError(
                    f"Controller '{controller}' toggles group '{field.controller_group}' "
                    f"but a declaration binds it to group '{group}'"
                )

        for other_group, controllers in self._group_controllers.items():
            if controller in controllers and other_group != group:
                raise FormConfigurationError(
                    f"Controller '{controller}' is bound to groups '{other_group}' and '{group}'"
                )
        controllers = self._group_controllers.setdefault(group, [])
        if controller not in controllers:
            controllers.append(controller)

    def _topological_order(self) -> Tuple[str, ...]:
        sorter = TopologicalSorter()
        for dependent in self._by_dependent:
            predecessors: Set[str] = set()
            for decl in self._by_dependent[dependent]:
                predecessors.update(self.containing_dependents(decl.controller_field))
            predecessors.update(self.containing_dependents(dependent, include_self=False))
            # Every controller of the group is decided before the group state is read
            for controller in self.controllers_in_group(self.group_of(dependent)):
                predecessors.update(self.containing_dependents(controller))
            sorter.add(dependent, *sorted(predecessors))
        try:
            order = tuple(n for n in sorter.static_order() if n in self._by_dependent)
        except CycleError as e:
            raise DependencyCycleError(e.args[1]) from e
        logger.debug(f"[DependencyGraph] Evaluation order: {order}")
        return order

    # ---------------------------------------------------------------- queries

    @property
    def evaluation_order(self) -> Tuple[str, ...]:
        """Dependents in an order where every predecessor comes first."""
        return self._order

    @property
    def dependents(self) -> Tuple[str, ...]:
        return tuple(self._by_dependent)

    @property
    def groups(self) -> Tuple[str, ...]:
        return tuple(self._groups)

    def is_dependent(self, name: str) -> bool:
        return name in self._by_dependent

    def is_controller(self, name: str) -> bool:
        return any(name in controllers for controllers in self._group_controllers.values())

    def is_known_controller(self, name: str) -> bool:
        return name not in self._unknown_controllers

    def declarations_for(self, dependent: str) -> Tuple[DependencyDeclaration, ...]:
        return tuple(self._by_dependent.get(dependent, ()))

    def group_of(self, dependent: str) -> Optional[str]:
        declarations = self._by_dependent.get(dependent)
        return declarations[0].group if declarations else None

    def dependents_in_group(self, group: str) -> Tuple[str, ...]:
        return tuple(self._groups.get(group, ()))

    def controllers_in_group(self, group: str) -> Tuple[str, ...]:
        return tuple(self._group_controllers.get(group, ()))

    def group_of_controller(self, controller: str) -> Optional[str]:
        for group, controllers in self._group_controllers.items():
            if controller in controllers:
                return group
        return None

    def trigger_identifiers(self, dependent: str) -> Tuple[str, ...]:
        """Union of a dependent's trigger identifiers in declaration order."""
        seen: List[str] = []
        for decl in self._by_dependent.get(dependent, ()):
            for value in sorted(decl.trigger_identifiers):
                if value not in seen:
                    seen.append(value)
        return tuple(seen)

    def ancestors(self, name: str) -> Tuple[str, ...]:
        """Enclosing field groups, innermost first."""
        chain: List[str] = []
        field = self.fields.get(name)
        while field is not None and field.parent is not None:
            if field.parent in chain or field.parent == name:
                raise FormConfigurationError(f"Field group containment loop at '{field.parent}'")
            chain.append(field.parent)
            field = self.fields.get(field.parent)
        return tuple(chain)

    def containing_dependents(self, name: str, include_self: bool = True) -> Tuple[str, ...]:
        """Dependents whose visibility gates ``name``: itself and its enclosing groups."""
        candidates = ((name,) if include_self else ()) + self.ancestors(name)
        return tuple(c for c in candidates if c in self._by_dependent)

    def nested_controllers(self, container: str) -> Tuple[str, ...]:
        """Controllers inside ``container`` (the container itself included)."""
        nested = []
        for controllers in self._group_controllers.values():
            for controller in controllers:
                if controller == container or container in self.ancestors(controller):
                    nested.append(controller)
        return tuple(nested)

    def kind_of(self, name: str, value: Any = None) -> FieldKind:
        field = self.fields.get(name)
        if field is not None:
            return field.kind
        return infer_kind(value)

    def option_value_of(self, name: str) -> Optional[str]:
        field = self.fields.get(name)
        return field.option_value if field is not None else None

    def __len__(self) -> int:
        return len(self.declarations)

    def __repr__(self) -> str:
        return f"DependencyGraph(dependents={len(self._by_dependent)}, groups={list(self._groups)})"
