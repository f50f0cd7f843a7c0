"""
Fluent form assembly.

FormBuilder collects fields, dependency declarations, checkbox trees and
per-form settings, then build() validates everything and returns an
immutable Form. Builder misuse fails at build time, never at render time.

Example:
    builder = FormBuilder("signup")
    builder.add_select("account_type", [("personal", "Personal"), ("business", "Business")])
    builder.add_text("company_size").depends_on("account_type", ["business", "enterprise"])
    with builder.group("billing") as billing:
        billing.depends_on("account_type", "business")
        builder.add_text("vat_number")
    form = builder.build()
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from html_formgen.animation.animation_config import AnimationConfig
from html_formgen.core.exceptions import FormConfigurationError
from html_formgen.dependencies.declaration import DependencyDeclaration, Field, FieldKind
from html_formgen.forms.form import Form
from html_formgen.protocols.form_config import get_form_config
from html_formgen.reactive.repeater_controller import DEFAULT_MAX_ROWS
from html_formgen.services.field_event_dispatcher import FieldEvent, FieldEventType, RequiredToggler
from html_formgen.tree.node import CascadeMode, CheckboxTree, TreeNode, build_tree

logger = logging.getLogger(__name__)

Choices = Union[Mapping[str, str], Sequence[Tuple[str, str]], Sequence[str]]
Listener = Callable[[FieldEvent], None]


def _normalize_choices(choices: Optional[Choices]) -> Tuple[Tuple[str, str], ...]:
    if not choices:
        return ()
    if isinstance(choices, Mapping):
        return tuple((str(v), str(label)) for v, label in choices.items())
    normalized = []
    for choice in choices:
        if isinstance(choice, (tuple, list)):
            value, label = choice
        else:
            value = label = choice
        normalized.append((str(value), str(label)))
    return tuple(normalized)


class FieldBuilder:
    """Fluent configuration of one field. Returned by every FormBuilder.add_* method."""

    def __init__(self, form_builder: "FormBuilder", field: Field):
        self._form_builder = form_builder
        self._field = field
        self._options: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._field.name

    def label(self, text: str) -> "FieldBuilder":
        self._field = replace(self._field, label=text)
        return self

    def required(self, required: bool = True) -> "FieldBuilder":
        self._field = replace(self._field, required=required)
        return self

    def value(self, value: Any) -> "FieldBuilder":
        self._field = replace(self._field, value=value)
        return self

    def attributes(self, **attributes: Any) -> "FieldBuilder":
        self._options.setdefault("attributes", {}).update(
            {name.replace("_", "-"): value for name, value in attributes.items()}
        )
        return self

    def option(self, name: str, value: Any) -> "FieldBuilder":
        """Set a render option passed to the field type pipeline."""
        self._options[name] = value
        return self

    def controls(self, group: Optional[str] = None) -> "FieldBuilder":
        """Mark this field as a controller of ``group`` (its own name by default)."""
        self._field = replace(self._field, is_controller=True, controller_group=group)
        return self

    # Alias named after the data-dependency markup attribute
    is_dependency = controls

    def depends_on(self, controller: str, values: Any, group: Optional[str] = None) -> "FieldBuilder":
        """Show this field while ``controller`` has one of ``values`` (``"all"``: any value)."""
        self._form_builder.add_dependency(self.name, controller, values, group)
        return self

    def on(self, event_type: FieldEventType, listener: Listener, priority: int = 0) -> "FieldBuilder":
        self._form_builder.on(event_type, listener, self.name, priority)
        return self

    def on_show(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.SHOW, listener, priority)

    def on_hide(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.HIDE, listener, priority)

    def on_dependency_check(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.DEPENDENCY_CHECK, listener, priority)

    def on_dependency_met(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.DEPENDENCY_MET, listener, priority)

    def on_dependency_not_met(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.DEPENDENCY_NOT_MET, listener, priority)

    def on_value_change(self, listener: Listener, priority: int = 0) -> "FieldBuilder":
        return self.on(FieldEventType.VALUE_CHANGE, listener, priority)

    def end(self) -> "FormBuilder":
        return self._form_builder

    def to_field(self) -> Field:
        return self._field

    def to_options(self) -> Dict[str, Any]:
        return dict(self._options)


class FieldGroupBuilder(FieldBuilder):
    """
    A field group. Used as a context manager, fields added inside the block
    belong to the group.

        with builder.group("company", label="Company") as company:
            company.depends_on("account_type", "business")
            builder.add_text("company_name")
    """

    def __enter__(self) -> "FieldGroupBuilder":
        self._form_builder._push_group(self.name)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self._form_builder._pop_group(self.name)

    def add_field(self, name: str, kind: FieldKind = FieldKind.TEXT, **kwargs: Any) -> FieldBuilder:
        """Add a field to this group without entering the context."""
        kwargs.setdefault("parent", self.name)
        return self._form_builder.add_field(name, kind, **kwargs)


class RepeaterBuilder(FieldGroupBuilder):
    """
    A repeatable row of fields. Fields added inside the block form the row
    template; the field's value is a list of row dicts keyed by field name.

        with builder.repeater("contacts", "Contact list", max_rows=5):
            builder.add_text("contact_name")
            builder.add_email("contact_email")

    Row fields can be neither controllers nor dependents.
    """

    def min_rows(self, count: int) -> "RepeaterBuilder":
        return self._set_bounds(count, self._options.get("max_rows", DEFAULT_MAX_ROWS))

    def max_rows(self, count: int) -> "RepeaterBuilder":
        return self._set_bounds(self._options.get("min_rows", 0), count)

    def _set_bounds(self, min_rows: int, max_rows: int) -> "RepeaterBuilder":
        if min_rows < 0 or max_rows < 1 or min_rows > max_rows:
            raise FormConfigurationError(
                f"Repeater '{self.name}' needs 0 <= min_rows <= max_rows and max_rows >= 1, "
                f"got min_rows={min_rows}, max_rows={max_rows}"
            )
        self._options["min_rows"] = min_rows
        self._options["max_rows"] = max_rows
        return self


_BUILDER_CLASSES = {
    FieldKind.GROUP: FieldGroupBuilder,
    FieldKind.REPEATER: RepeaterBuilder,
}


class FormBuilder:
    """Collects form parts and builds an immutable Form."""

    def __init__(self, form_id: str, action: str = "", method: str = "POST"):
        if not form_id:
            raise FormConfigurationError("A form needs a non-empty id")
        self.form_id = form_id
        self.action = action
        self.method = method

        self._fields: Dict[str, FieldBuilder] = {}
        self._declarations: List[Tuple[DependencyDeclaration, bool]] = []
        self._trees: Dict[str, CheckboxTree] = {}
        self._group_stack: List[str] = []
        self._listeners: List[Tuple[FieldEventType, Listener, Optional[str], int]] = []
        self._data: Dict[str, Any] = {}
        self._animation: Optional[AnimationConfig] = None
        self._server_side: Optional[bool] = None
        self._required_toggle: Optional[Tuple[str, ...]] = None

    # ----------------------------------------------------------------- fields

    def add_field(self, name: str, kind: FieldKind = FieldKind.TEXT, label: Optional[str] = None,
                  value: Any = None, choices: Optional[Choices] = None, required: bool = False,
                  option_value: Optional[str] = None, parent: Optional[str] = None) -> FieldBuilder:
        """
        Add a field of any kind.

        Raises:
            FormConfigurationError: The name is already used in this form
        """
        if not name:
            raise FormConfigurationError("Field names must be non-empty")
        if name in self._fields:
            raise FormConfigurationError(f"Duplicate field name '{name}' in form '{self.form_id}'")

        field = Field(
            name=name,
            kind=FieldKind(kind),
            value=value,
            parent=parent if parent is not None else (self._group_stack[-1] if self._group_stack else None),
            option_value=option_value,
            options=_normalize_choices(choices),
            label=label,
            required=required,
        )
        builder_class = _BUILDER_CLASSES.get(field.kind, FieldBuilder)
        builder = builder_class(self, field)
        self._fields[name] = builder
        return builder

    def add_text(self, name: str, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.TEXT, label, **kwargs)

    def add_email(self, name: str, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.EMAIL, label, **kwargs)

    def add_number(self, name: str, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.NUMBER, label, **kwargs)

    def add_textarea(self, name: str, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.TEXTAREA, label, **kwargs)

    def add_hidden(self, name: str, value: Any = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.HIDDEN, value=value, **kwargs)

    def add_select(self, name: str, choices: Choices, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.SELECT, label, choices=choices, **kwargs)

    def add_radio(self, name: str, choices: Choices, label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.RADIO, label, choices=choices, **kwargs)

    def add_checkbox(self, name: str, label: Optional[str] = None, option_value: str = "1",
                     **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.CHECKBOX, label, option_value=option_value, **kwargs)

    def add_checkbox_group(self, name: str, choices: Choices, label: Optional[str] = None,
                           **kwargs: Any) -> FieldBuilder:
        return self.add_field(name, FieldKind.CHECKBOX, label, choices=choices, **kwargs)

    def add_checkbox_tree(self, name: str, nodes: Iterable[Union[TreeNode, Mapping[str, Any]]],
                          mode: CascadeMode = CascadeMode.CASCADE, tree_id: Optional[str] = None,
                          label: Optional[str] = None, **kwargs: Any) -> FieldBuilder:
        """
        Add a hierarchical checkbox tree. ``nodes`` are TreeNodes or nested mappings.

        Raises:
            TreeValidationError: Duplicate values or a node that contains itself
        """
        nodes = list(nodes)
        roots = [n if isinstance(n, TreeNode) else build_tree([n])[0] for n in nodes]
        builder = self.add_field(name, FieldKind.CHECKBOX_TREE, label, **kwargs)
        self._trees[name] = CheckboxTree(tree_id or f"{self.form_id}_{name}", roots, CascadeMode(mode))
        return builder

    def group(self, name: str, label: Optional[str] = None) -> FieldGroupBuilder:
        """Add a field group; use the returned builder as a context manager."""
        return self.add_field(name, FieldKind.GROUP, label)

    def repeater(self, name: str, label: Optional[str] = None, min_rows: int = 0,
                 max_rows: int = DEFAULT_MAX_ROWS) -> RepeaterBuilder:
        """
        Add a repeater; fields added inside the returned context manager form its row.

        Raises:
            FormConfigurationError: Row bounds out of order
        """
        builder = self.add_field(name, FieldKind.REPEATER, label)
        return builder._set_bounds(min_rows, max_rows)

    def _push_group(self, name: str) -> None:
        self._group_stack.append(name)

    def _pop_group(self, name: str) -> None:
        if not self._group_stack or self._group_stack[-1] != name:
            raise FormConfigurationError(f"Field group '{name}' closed out of order")
        self._group_stack.pop()

    def get(self, name: str) -> FieldBuilder:
        return self._fields[name]

    # ----------------------------------------------------------- dependencies

    def add_dependency(self, dependent: str, controller: str, values: Any,
                       group: Optional[str] = None) -> "FormBuilder":
        declaration = DependencyDeclaration.create(dependent, controller, values, group)
        self._declarations.append((declaration, group is not None))
        return self

    def controls(self, field_name: str, group: Optional[str] = None) -> "FormBuilder":
        self._fields[field_name].controls(group)
        return self

    is_dependency = controls

    # --------------------------------------------------------------- settings

    def set_data(self, data: Mapping[str, Any]) -> "FormBuilder":
        """Initial values (submitted or loaded) overriding field defaults."""
        self._data.update(data)
        return self

    def set_dependency_animation(self, options: Union[AnimationConfig, Mapping[str, Any], None] = None,
                                 **kwargs: Any) -> "FormBuilder":
        """
        Configure show/hide transitions for this form.

        Accepts an AnimationConfig, or options merged over the current setting
        (``enabled``, ``type``, ``duration``/``duration_ms``, ``easing``).
        """
        if isinstance(options, AnimationConfig):
            self._animation = options
            return self
        base = self._animation or get_form_config().default_animation
        merged = dict(options or {})
        merged.update(kwargs)
        self._animation = base.merged(merged)
        return self

    def disable_dependency_animation(self) -> "FormBuilder":
        return self.set_dependency_animation(enabled=False)

    def enable_server_side_dependency_evaluation(self, enabled: bool = True) -> "FormBuilder":
        self._server_side = enabled
        return self

    def clear_required_when_hidden(self, *field_names: str) -> "FormBuilder":
        """Clear ``required`` while fields are hidden (all required fields when none are named)."""
        self._required_toggle = tuple(field_names)
        return self

    def on(self, event_type: FieldEventType, listener: Listener, field_name: Optional[str] = None,
           priority: int = 0) -> "FormBuilder":
        self._listeners.append((event_type, listener, field_name, priority))
        return self

    # ------------------------------------------------------------------ build

    def build(self) -> Form:
        """
        Validate and freeze the form.

        Raises:
            FormConfigurationError: Unknown parents, open groups, conflicting controller groups,
                repeater rows with nested containers or dependency roles
            DependencyCycleError: Declarations (with group containment) form a cycle
        """
        if self._group_stack:
            raise FormConfigurationError(f"Field group '{self._group_stack[-1]}' was never closed")

        declarations = self._resolve_groups()
        fields = self._resolve_controllers([b.to_field() for b in self._fields.values()], declarations)
        self._validate_parents(fields)
        self._validate_repeaters(fields, declarations)

        for decl in declarations:
            if decl.dependent_field not in self._fields:
                raise FormConfigurationError(
                    f"Dependency declared for unknown field '{decl.dependent_field}' in form '{self.form_id}'"
                )

        for name, tree in self._trees.items():
            if name in self._data:
                tree.set_checked_values(self._data[name] or ())

        form = Form(
            self.form_id,
            fields,
            declarations,
            trees=self._trees,
            animation=self._animation,
            server_side_evaluation=self._server_side,
            data={k: v for k, v in self._data.items() if k not in self._trees},
            field_options={name: b.to_options() for name, b in self._fields.items()},
            action=self.action,
            method=self.method,
        )

        for event_type, listener, field_name, priority in self._listeners:
            form.on(event_type, listener, field_name, priority)

        if self._required_toggle is not None:
            names = self._required_toggle or tuple(f.name for f in fields if f.required)
            RequiredToggler(form.set_required, names).subscribe(form.dispatcher)

        return form

    def _resolve_groups(self) -> List[DependencyDeclaration]:
        """Declarations without an explicit group use their controller's group, if it has one."""
        declarations = []
        for decl, explicit in self._declarations:
            controller = self._fields.get(decl.controller_field)
            if not explicit and controller is not None and controller.to_field().controller_group:
                decl = replace(decl, group=controller.to_field().controller_group)
            declarations.append(decl)
        return declarations

    def _resolve_controllers(self, fields: List[Field],
                             declarations: List[DependencyDeclaration]) -> List[Field]:
        """Mark every declared controller and give it the group its declarations use."""
        groups: Dict[str, str] = {}
        for decl in declarations:
            if decl.controller_field not in self._fields:
                logger.debug(f"[FormBuilder] Unknown controller '{decl.controller_field}' left to the graph")
                continue
            previous = groups.setdefault(decl.controller_field, decl.group)
            if previous != decl.group:
                raise FormConfigurationError(
                    f"Controller '{decl.controller_field}' is used with groups '{previous}' and '{decl.group}'"
                )

        resolved = []
        for field in fields:
            group = groups.get(field.name)
            if group is not None:
                if field.controller_group is not None and field.controller_group != group:
                    raise FormConfigurationError(
                        f"Controller '{field.name}' toggles group '{field.controller_group}' "
                        f"but a declaration binds it to group '{group}'"
                    )
                field = replace(field, is_controller=True, controller_group=group)
            resolved.append(field)
        return resolved

    @staticmethod
    def _validate_parents(fields: List[Field]) -> None:
        kinds = {f.name: f.kind for f in fields}
        for field in fields:
            if field.parent is None:
                continue
            if field.parent not in kinds:
                raise FormConfigurationError(f"Field '{field.name}' is inside unknown group '{field.parent}'")
            if not kinds[field.parent].is_container:
                raise FormConfigurationError(
                    f"Field '{field.name}' is inside '{field.parent}', which is not a field group or repeater"
                )

    @staticmethod
    def _validate_repeaters(fields: List[Field], declarations: List[DependencyDeclaration]) -> None:
        """Repeater rows hold plain inputs only: no nesting, no dependency roles."""
        kinds = {f.name: f.kind for f in fields}
        dependents = {decl.dependent_field for decl in declarations}
        for field in fields:
            if field.kind is FieldKind.REPEATER and field.is_controller:
                raise FormConfigurationError(f"Repeater '{field.name}' cannot be a controller")
            if field.parent is None or kinds.get(field.parent) is not FieldKind.REPEATER:
                continue
            if field.kind.is_container or field.kind is FieldKind.CHECKBOX_TREE:
                raise FormConfigurationError(
                    f"Repeater '{field.parent}' cannot contain {field.kind.value} '{field.name}'"
                )
            if field.is_controller or field.name in dependents:
                raise FormConfigurationError(
                    f"Field '{field.name}' in repeater '{field.parent}' cannot take part in dependencies"
                )
