"""
Field type registry with metaclass auto-registration.

Field types auto-register when their classes are defined. At registration
the inheritance chain is resolved once into a linear pipeline:

    configure_options -> build_field -> finish_view

Each stage runs the implementations along the MRO from the most general
class to the most specific one, so a subtype only adds what differs.

Design:
- FieldTypeMeta metaclass handles registration and pipeline resolution
- FIELD_TYPES: Global registry of field types by type id
- Fail-loud on unknown type ids
"""

import logging
from abc import ABCMeta
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from html_formgen.dependencies.declaration import Field, FieldKind
from html_formgen.reactive.dom import Document, Element, create_element, fragment
from html_formgen.tree.node import CheckboxTree, TreeNode

logger = logging.getLogger(__name__)

# Global registry of field types
# Maps type id -> field type class
FIELD_TYPES: Dict[str, Type["FieldType"]] = {}

PIPELINE_STAGES = ("configure_options", "build_field", "finish_view")


@dataclass
class FieldView:
    """
    Render-time state of one field passed through the pipeline.

    ``element`` is what build_field produced: a single input or container, or
    a fragment (a parentless Document) holding several labelled inputs.
    """
    field: Field
    value: Any = None
    options: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    element: Optional[Union[Element, Document]] = None
    form_id: str = ""

    @property
    def input_id(self) -> str:
        return f"{self.form_id}-{self.field.name}" if self.form_id else self.field.name

    def inputs(self) -> List[Element]:
        return list(self.element.iter_inputs()) if self.element is not None else []


class FieldTypeMeta(ABCMeta):
    """
    Metaclass for automatic field type registration.

    1. Only registers concrete types (no abstract methods) with a ``_type_id``
    2. Resolves ``_pipeline``: stage name -> ordered functions along the MRO
    3. Warns when a type id is registered twice

    Example:
        class ColorType(TextType):
            _type_id = "color"

            def build_field(self, view):
                view.element.set_attribute("type", "color")
    """

    def __new__(cls, name, bases, attrs):
        new_class = super().__new__(cls, name, bases, attrs)

        pipeline: Dict[str, Tuple[Callable, ...]] = {}
        for stage in PIPELINE_STAGES:
            pipeline[stage] = tuple(
                klass.__dict__[stage] for klass in reversed(new_class.__mro__) if stage in klass.__dict__
            )
        new_class._pipeline = pipeline

        if getattr(new_class, "__abstractmethods__", None):
            logger.debug(f"Skipping registration for {name} - abstract methods remaining")
            return new_class

        type_id = getattr(new_class, "_type_id", None)
        if type_id is None:
            logger.debug(f"Skipping registration for {name} - no _type_id attribute")
            return new_class

        if type_id in FIELD_TYPES:
            logger.warning(
                f"Field type '{type_id}' already registered to {FIELD_TYPES[type_id].__name__}. "
                f"Overwriting with {name}."
            )
        FIELD_TYPES[type_id] = new_class
        stage_counts = {stage: len(funcs) for stage, funcs in pipeline.items()}
        logger.debug(f"Auto-registered {name} as '{type_id}' with pipeline {stage_counts}")
        return new_class


def get_field_type(type_id: str) -> Type["FieldType"]:
    """
    Get a field type class by id.

    Raises:
        KeyError: If type_id is not registered
    """
    if type_id not in FIELD_TYPES:
        raise KeyError(
            f"No field type registered with ID '{type_id}'. "
            f"Available types: {sorted(FIELD_TYPES)}"
        )
    return FIELD_TYPES[type_id]


class FieldType(metaclass=FieldTypeMeta):
    """
    Base of every field type.

    Subclasses override any pipeline stage; the base stages set the id,
    name, label-independent attributes and the controller wire attributes.
    """
    _type_id: Optional[str] = None
    _pipeline: Dict[str, Tuple[Callable, ...]] = {}

    def configure_options(self, options: Dict[str, Any]) -> None:
        options.setdefault("attributes", {})

    def build_field(self, view: FieldView) -> None:
        pass

    def finish_view(self, view: FieldView) -> None:
        inputs = view.inputs()
        for control in inputs:
            for name, value in view.attributes.items():
                control.set_attribute(name, value)
            if view.field.required and view.options.get("required", True):
                control.set_attribute("required", True)

        group = view.options.get("controller_group")
        if group:
            for control in inputs:
                control.set_attribute("data-dependency", "true")
                control.set_attribute("data-dependency-group", group)
                control.set_attribute("data-dependency-field", view.field.name)

    def create_view(self, field: Field, value: Any = None, form_id: str = "",
                    options: Optional[Dict[str, Any]] = None) -> FieldView:
        """Run the resolved pipeline for one field and return the finished view."""
        merged = dict(options or {})
        for stage in self._pipeline["configure_options"]:
            stage(self, merged)
        view = FieldView(field=field, value=value, options=merged,
                         attributes=dict(merged.get("attributes", {})), form_id=form_id)
        for stage in self._pipeline["build_field"]:
            stage(self, view)
        for stage in self._pipeline["finish_view"]:
            stage(self, view)
        return view


def _choices(field: Field) -> Tuple[Tuple[str, str], ...]:
    return tuple((str(v), str(label)) for v, label in field.options)


def _selected(value: Any) -> set:
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set, frozenset)):
        return {str(v) for v in value}
    if isinstance(value, bool):
        return set()
    return {str(value)}


class TextType(FieldType):
    _type_id = FieldKind.TEXT.value
    input_type = "text"

    def build_field(self, view: FieldView) -> None:
        view.element = create_element("input", {
            "type": self.input_type,
            "id": view.input_id,
            "name": view.field.name,
            "value": "" if view.value is None else str(view.value),
        })


class EmailType(TextType):
    _type_id = FieldKind.EMAIL.value
    input_type = "email"


class NumberType(TextType):
    _type_id = FieldKind.NUMBER.value
    input_type = "number"

    def configure_options(self, options: Dict[str, Any]) -> None:
        attributes = options["attributes"]
        for key in ("min", "max", "step"):
            if key in options:
                attributes.setdefault(key, options[key])


class HiddenType(TextType):
    _type_id = FieldKind.HIDDEN.value
    input_type = "hidden"


class TextareaType(FieldType):
    _type_id = FieldKind.TEXTAREA.value

    def configure_options(self, options: Dict[str, Any]) -> None:
        options["attributes"].setdefault("rows", options.get("rows", 3))

    def build_field(self, view: FieldView) -> None:
        view.element = create_element("textarea", {"id": view.input_id, "name": view.field.name},
                                      text="" if view.value is None else str(view.value))


class SelectType(FieldType):
    _type_id = FieldKind.SELECT.value

    def configure_options(self, options: Dict[str, Any]) -> None:
        options.setdefault("placeholder", "")
        options.setdefault("multiple", False)

    def build_field(self, view: FieldView) -> None:
        multiple = bool(view.options["multiple"])
        select = create_element("select", {
            "id": view.input_id,
            "name": f"{view.field.name}[]" if multiple else view.field.name,
            "multiple": multiple,
        })
        selected = _selected(view.value)
        if not multiple:
            select.append(create_element("option", {"value": "", "selected": not selected},
                                         text=view.options["placeholder"]))
        for value, label in _choices(view.field):
            select.append(create_element("option", {"value": value, "selected": value in selected}, text=label))
        view.element = select


class CheckboxType(FieldType):
    """Single checkbox, or a checkbox list when the field has options."""
    _type_id = FieldKind.CHECKBOX.value
    input_type = "checkbox"

    def build_field(self, view: FieldView) -> None:
        choices = _choices(view.field)
        if not choices:
            option_value = view.field.option_value or "1"
            checked = view.value is True or str(view.value) == option_value
            view.element = create_element("input", {
                "type": self.input_type,
                "id": view.input_id,
                "name": view.field.name,
                "value": option_value,
                "checked": checked,
            })
            return

        selected = _selected(view.value)
        container = fragment()
        for index, (value, label) in enumerate(choices):
            control = create_element("input", {
                "type": self.input_type,
                "id": f"{view.input_id}-{index}",
                "name": self._choice_name(view),
                "value": value,
                "checked": value in selected,
            })
            container.append(create_element("label", {"for": control.get_attribute("id")}, [control], text=label))
        view.element = container

    def _choice_name(self, view: FieldView) -> str:
        return f"{view.field.name}[]"


class RadioType(CheckboxType):
    _type_id = FieldKind.RADIO.value
    input_type = "radio"

    def _choice_name(self, view: FieldView) -> str:
        return view.field.name


class CheckboxTreeType(FieldType):
    """Nested ``ul > li > label > input`` markup for a CheckboxTree (``options['tree']``)."""
    _type_id = FieldKind.CHECKBOX_TREE.value

    def configure_options(self, options: Dict[str, Any]) -> None:
        if not isinstance(options.get("tree"), CheckboxTree):
            raise ValueError("checkbox_tree fields need a CheckboxTree in options['tree']")

    def build_field(self, view: FieldView) -> None:
        tree: CheckboxTree = view.options["tree"]
        container = create_element("div", {
            "class": "checkbox-tree",
            "data-checkbox-tree": tree.tree_id,
            "data-tree-mode": tree.mode.value,
        })
        container.append(self._build_list(tree.roots, view.field.name))
        view.element = container

    def _build_list(self, nodes: List[TreeNode], name: str) -> Element:
        ul = create_element("ul")
        for node in nodes:
            checkbox = create_element("input", {
                "type": "checkbox",
                "name": f"{name}[]",
                "value": node.value,
                "checked": node.checked,
                "disabled": node.disabled,
            })
            checkbox.indeterminate = node.indeterminate
            if node.indeterminate:
                checkbox.set_attribute("data-indeterminate", "true")
            li = ul.append(create_element("li"))
            li.append(create_element("label", children=[checkbox], text=node.label))
            if node.children:
                li.append(self._build_list(node.children, name))
        return ul
