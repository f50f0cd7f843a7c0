"""
Built form.

A Form is what FormBuilder.build() returns: fields, declarations and trees
are fixed; only field values, ``required`` flags and listener registrations
change afterwards. The dependency graph is validated when the form is
created, so a cyclic form never exists.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from html_formgen.animation.animation_config import AnimationConfig
from html_formgen.dependencies.declaration import DependencyDeclaration, Field, FieldKind
from html_formgen.dependencies.evaluator import EvaluationResult, VisibilityEvaluator
from html_formgen.dependencies.graph import DependencyGraph
from html_formgen.protocols.form_config import get_form_config
from html_formgen.services.field_event_dispatcher import FieldEvent, FieldEventDispatcher, FieldEventType
from html_formgen.tree.node import CheckboxTree

logger = logging.getLogger(__name__)


class Form:
    """
    Immutable form definition plus its current values.

    Args:
        form_id: DOM id of the form, also the script namespace source
        fields: Fields in document order
        declarations: Dependency declarations
        trees: Checkbox trees by field name
        animation: Per-form transition settings (None: config default)
        server_side_evaluation: Omit hidden dependents (None: config default)
        data: Initial values overriding field defaults
        field_options: Extra per-field render options by field name
        action: Form action URL
        method: HTTP method
    """

    def __init__(self, form_id: str, fields: Iterable[Field],
                 declarations: Iterable[DependencyDeclaration] = (),
                 trees: Optional[Mapping[str, CheckboxTree]] = None,
                 animation: Optional[AnimationConfig] = None,
                 server_side_evaluation: Optional[bool] = None,
                 data: Optional[Mapping[str, Any]] = None,
                 field_options: Optional[Mapping[str, Mapping[str, Any]]] = None,
                 action: str = "",
                 method: str = "POST"):
        config = get_form_config()
        self._form_id = form_id
        self._fields: Tuple[Field, ...] = tuple(fields)
        self._field_map: Dict[str, Field] = {f.name: f for f in self._fields}
        self._trees: Dict[str, CheckboxTree] = dict(trees or {})
        self._animation = animation if animation is not None else config.default_animation
        self._server_side_evaluation = (
            config.server_side_evaluation if server_side_evaluation is None else server_side_evaluation
        )
        self._field_options = {name: dict(opts) for name, opts in (field_options or {}).items()}
        self.action = action
        self.method = method.upper()

        self.graph = DependencyGraph(declarations, self._field_map)
        self.dispatcher = FieldEventDispatcher()

        self._values: Dict[str, Any] = {f.name: f.value for f in self._fields if f.value is not None}
        self._values.update(data or {})
        self._required: Dict[str, bool] = {f.name: f.required for f in self._fields}
        self._visibility: Optional[Dict[str, bool]] = None

        logger.debug(
            f"[Form] Built '{form_id}': {len(self._fields)} fields, "
            f"{len(self.graph)} declarations, {len(self._trees)} trees"
        )

    # ------------------------------------------------------------- definition

    @property
    def form_id(self) -> str:
        return self._form_id

    @property
    def fields(self) -> Tuple[Field, ...]:
        return self._fields

    @property
    def declarations(self) -> Tuple[DependencyDeclaration, ...]:
        return self.graph.declarations

    @property
    def trees(self) -> Mapping[str, CheckboxTree]:
        return MappingProxyType(self._trees)

    @property
    def animation(self) -> AnimationConfig:
        return self._animation

    @property
    def server_side_evaluation(self) -> bool:
        return self._server_side_evaluation

    @property
    def has_dependencies(self) -> bool:
        return len(self.graph) > 0

    def field(self, name: str) -> Field:
        try:
            return self._field_map[name]
        except KeyError:
            raise KeyError(f"Form '{self._form_id}' has no field '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name in self._field_map

    def children_of(self, parent: Optional[str]) -> Tuple[Field, ...]:
        """Fields directly inside group ``parent`` (None: top level), in document order."""
        return tuple(f for f in self._fields if f.parent == parent)

    def tree(self, name: str) -> CheckboxTree:
        return self._trees[name]

    def options_for(self, name: str) -> Dict[str, Any]:
        options = dict(self._field_options.get(name, {}))
        field = self._field_map[name]
        if field.kind is FieldKind.CHECKBOX_TREE:
            options["tree"] = self._trees[name]
        if field.is_controller or self.graph.is_controller(name):
            options["controller_group"] = self.graph.group_of_controller(name) or field.group
        return options

    # ----------------------------------------------------------------- values

    @property
    def values(self) -> Mapping[str, Any]:
        """Current snapshot; checkbox tree fields report their checked values."""
        snapshot = dict(self._values)
        for name, tree in self._trees.items():
            snapshot[name] = tree.checked_values()
        return MappingProxyType(snapshot)

    def value_of(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def is_required(self, name: str) -> bool:
        return self._required.get(name, False)

    def set_required(self, name: str, required: bool) -> None:
        if name not in self._field_map:
            raise KeyError(f"Form '{self._form_id}' has no field '{name}'")
        self._required[name] = required

    # ------------------------------------------------------------- evaluation

    def evaluate(self, values: Optional[Mapping[str, Any]] = None) -> EvaluationResult:
        """
        Evaluate visibility against the current values (``values`` overrides them).

        SHOW/HIDE are dispatched for every field on the first pass and only for
        changes on later passes.
        """
        snapshot = dict(self.values)
        snapshot.update(values or {})
        evaluator = VisibilityEvaluator(self.graph, self.dispatcher, self)
        result = evaluator.evaluate(snapshot, previous=self._visibility)
        self._visibility = dict(result.visibility)
        return result

    def is_visible(self, name: str) -> bool:
        if self._visibility is None:
            self.evaluate()
        return self._visibility.get(name, True)

    def trigger_field_value_change(self, name: str, value: Any) -> EvaluationResult:
        """Set a value programmatically, dispatch VALUE_CHANGE and re-evaluate dependencies."""
        if name not in self._field_map:
            raise KeyError(f"Form '{self._form_id}' has no field '{name}'")

        old_value = self.value_of(name)
        if name in self._trees:
            self._trees[name].set_checked_values(value or ())
        else:
            self._values[name] = value
        self.dispatcher.dispatch(name, FieldEventType.VALUE_CHANGE, self, old_value=old_value, value=value)
        logger.debug(f"[Form] {self._form_id}.{name}: {old_value!r} -> {value!r}")
        return self.evaluate()

    # -------------------------------------------------------------- listeners

    def on(self, event_type: FieldEventType, listener: Callable[[FieldEvent], None],
           field_name: Optional[str] = None, priority: int = 0) -> "Form":
        self.dispatcher.add_listener(event_type, listener, field_name, priority)
        return self

    def __repr__(self) -> str:
        return f"Form({self._form_id!r}, fields={[f.name for f in self._fields]})"
