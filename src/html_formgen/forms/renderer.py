"""
Form renderer.

Evaluates visibility once against the form's values, builds the element
tree carrying the dependency wire attributes, and appends the controller
scripts through the render pass's RenderContext so a form rendered twice on
one page emits its scripts once.

Dependent wrapper markup:

    <div data-field="company_size" data-dependends=""
         data-dependend="account_type-business account_type-enterprise"
         data-dependend-group="account_type" style="display: none;">
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from html_formgen.core.render_guard import RenderContext
from html_formgen.dependencies.declaration import Field, FieldKind
from html_formgen.dependencies.evaluator import EvaluationResult
from html_formgen.forms.field_types import FieldView, get_field_type
from html_formgen.forms.form import Form
from html_formgen.protocols.form_config import FormGenConfig, get_form_config
from html_formgen.reactive.dom import INPUT_TAGS, TEMPLATE_MARKER, Document, Element, create_element
from html_formgen.reactive.repeater_controller import (
    ADD_CONTAINER_MARKER,
    ADD_MARKER,
    DEFAULT_MAX_ROWS,
    INDEX_PLACEHOLDER,
    ITEM_MARKER,
    REMOVE_MARKER,
    REPEATER_ATTR,
    ROW_NUMBER_MARKER,
    repeater_dom_id,
    row_input_name,
)
from html_formgen.scripts.checkbox_tree_script import CheckboxTreeScriptGenerator
from html_formgen.scripts.dependency_script import DependencyScriptGenerator
from html_formgen.scripts.repeater_script import RepeaterScriptGenerator
from html_formgen.services.field_event_dispatcher import FieldEventType

logger = logging.getLogger(__name__)


@dataclass
class RenderedForm:
    """Output of one render call."""
    form_id: str
    element: Element
    scripts: List[str] = field(default_factory=list)
    visibility: Dict[str, bool] = field(default_factory=dict)
    omitted: List[str] = field(default_factory=list)

    @property
    def document(self) -> Document:
        """The form inside a Document, ready for a ReactiveController."""
        top = self.element.root()
        if isinstance(top, Document):
            return top
        document = Document()
        document.append(top)
        return document

    @property
    def markup(self) -> str:
        return self.element.to_html()

    @property
    def html(self) -> str:
        return self.markup + "".join(self.scripts)

    def __str__(self) -> str:
        return self.html


class FormRenderer:
    """
    Renders Forms within one render pass.

    Args:
        context: Render pass state; a fresh context is created when omitted
        config: Application config; the global config when omitted

    Example:
        renderer = FormRenderer(RenderContext())
        page = renderer.render(form).html + renderer.render(form).html  # one script
    """

    def __init__(self, context: Optional[RenderContext] = None, config: Optional[FormGenConfig] = None):
        self.context = context if context is not None else RenderContext()
        self.config = config if config is not None else get_form_config()

    def render(self, form: Form, values: Optional[Mapping[str, Any]] = None) -> RenderedForm:
        result = form.evaluate(values)
        snapshot = dict(form.values)
        snapshot.update(values or {})

        form_element = create_element("form", {
            "id": form.form_id,
            "action": form.action,
            "method": form.method,
            "data-formgen": "true",
        })
        rendered = RenderedForm(form.form_id, form_element, visibility=dict(result.visibility))

        for child in form.children_of(None):
            self._render_field(form, child, snapshot, result, form_element, rendered)

        if form.has_dependencies:
            script = DependencyScriptGenerator(form.animation, self.config.wrap_scripts).emit(
                self.context, form.form_id
            )
            if script:
                rendered.scripts.append(script)

        tree_generator = CheckboxTreeScriptGenerator(self.config.wrap_scripts)
        for name, tree in form.trees.items():
            if name in rendered.omitted:
                continue
            script = tree_generator.emit(self.context, tree.tree_id, tree.mode)
            if script:
                rendered.scripts.append(script)

        repeater_generator = RepeaterScriptGenerator(self.config.wrap_scripts)
        for repeater in form.fields:
            if repeater.kind is not FieldKind.REPEATER or repeater.name in rendered.omitted:
                continue
            options = form.options_for(repeater.name)
            script = repeater_generator.emit(
                self.context, repeater_dom_id(form.form_id, repeater.name),
                options.get("min_rows", 0), options.get("max_rows", DEFAULT_MAX_ROWS),
            )
            if script:
                rendered.scripts.append(script)

        logger.debug(
            f"[FormRenderer] Rendered '{form.form_id}': {len(rendered.scripts)} scripts, "
            f"omitted={rendered.omitted}"
        )
        return rendered

    # --------------------------------------------------------------- internals

    def _render_field(self, form: Form, field: Field, values: Mapping[str, Any],
                      result: EvaluationResult, parent: Element, rendered: RenderedForm) -> None:
        visible = result.is_visible(field.name)
        if form.server_side_evaluation and not visible:
            rendered.omitted.append(field.name)
            rendered.omitted.extend(f.name for f in form.fields if field.name in form.graph.ancestors(f.name))
            return

        form.dispatcher.dispatch(field.name, FieldEventType.PRE_RENDER, form, visible=visible)

        if field.kind is FieldKind.GROUP:
            wrapper = create_element("fieldset", {"class": "form-group", "data-field": field.name})
            if field.label:
                wrapper.append(create_element("legend", text=field.label))
            for child in form.children_of(field.name):
                self._render_field(form, child, values, result, wrapper, rendered)
        elif field.kind is FieldKind.REPEATER:
            wrapper = self._render_repeater(form, field, values.get(field.name))
        else:
            wrapper = self._render_input(form, field, values.get(field.name))

        self._apply_dependency_attributes(form, field.name, wrapper, visible)
        parent.append(wrapper)

        form.dispatcher.dispatch(field.name, FieldEventType.POST_RENDER, form, visible=visible, element=wrapper)

    def _render_input(self, form: Form, field: Field, value: Any, id_prefix: Optional[str] = None) -> Element:
        options = form.options_for(field.name)
        options["required"] = form.is_required(field.name)
        prefix = form.form_id if id_prefix is None else id_prefix
        view: FieldView = get_field_type(field.kind.value)().create_view(field, value, prefix, options)

        if field.kind is FieldKind.HIDDEN:
            wrapper = create_element("div", {"class": "form-field form-field-hidden", "data-field": field.name})
            wrapper.append(view.element)
            return wrapper

        wrapper = create_element("div", {"class": f"form-field form-field-{field.kind.value}", "data-field": field.name})
        label_text = field.label if field.label is not None else field.name.replace("_", " ").capitalize()
        is_list = isinstance(view.element, Document) or field.kind is FieldKind.CHECKBOX_TREE
        label_attrs = {} if is_list else {"for": view.input_id}
        wrapper.append(create_element("label", label_attrs, text=label_text))
        if isinstance(view.element, Document):
            for child in list(view.element.contents):
                wrapper.append(child)
        else:
            wrapper.append(view.element)
        return wrapper

    def _render_repeater(self, form: Form, field: Field, value: Any) -> Element:
        """
        Repeater wrapper: a disabled, hidden row template, one row per value
        (padded up to ``min_rows``) and the add button.
        """
        options = form.options_for(field.name)
        min_rows = options.get("min_rows", 0)
        max_rows = options.get("max_rows", DEFAULT_MAX_ROWS)
        rows = [row for row in (value or ()) if isinstance(row, Mapping)]
        if len(rows) > max_rows:
            logger.warning(
                f"[FormRenderer] Repeater '{field.name}' has {len(rows)} rows, rendering the first {max_rows}"
            )
            rows = rows[:max_rows]
        rows.extend({} for _ in range(min_rows - len(rows)))

        wrapper = create_element("div", {"class": "form-field form-field-repeater", "data-field": field.name})
        if field.label:
            wrapper.append(create_element("label", text=field.label))
        container = wrapper.append(create_element("div", {
            REPEATER_ATTR: repeater_dom_id(form.form_id, field.name),
            "data-min-rows": min_rows,
            "data-max-rows": max_rows,
        }))

        template = container.append(self._render_row(form, field, {}, INDEX_PLACEHOLDER, removable=True))
        template.set_attribute(TEMPLATE_MARKER, True)
        template.set_style("display", "none")
        for control in template.find_all(INPUT_TAGS):
            control.set_disabled(True)

        for index, row in enumerate(rows):
            item = container.append(self._render_row(form, field, row, str(index), len(rows) > min_rows))
            item.set_attribute(ITEM_MARKER, True)

        add_container = container.append(create_element("div", {ADD_CONTAINER_MARKER: True}))
        add_container.append(create_element("button", {
            "type": "button",
            ADD_MARKER: True,
            "disabled": len(rows) >= max_rows,
        }, text="Add item"))
        return wrapper

    def _render_row(self, form: Form, repeater: Field, row: Mapping[str, Any], index: str,
                    removable: bool) -> Element:
        item = create_element("div", {"class": "repeater-row"})
        header = item.append(create_element("div", {"class": "repeater-row-header"}))
        number = "" if index == INDEX_PLACEHOLDER else f"#{int(index) + 1}"
        header.append(create_element("span", {ROW_NUMBER_MARKER: True}, text=number))
        header.append(create_element("button", {
            "type": "button",
            REMOVE_MARKER: True,
            "disabled": not removable,
        }, text="Remove"))

        id_prefix = f"{repeater_dom_id(form.form_id, repeater.name)}-{index}"
        for child in form.children_of(repeater.name):
            control_wrapper = item.append(self._render_input(form, child, row.get(child.name, child.value), id_prefix))
            for control in control_wrapper.find_all(INPUT_TAGS):
                control.set_attribute("name", row_input_name(repeater.name, index, control.get_attribute("name")))
        return item

    def _apply_dependency_attributes(self, form: Form, name: str, wrapper: Element, visible: bool) -> None:
        if not form.graph.is_dependent(name):
            return
        wrapper.set_attribute("data-dependends", "")
        wrapper.set_attribute("data-dependend", " ".join(form.graph.trigger_identifiers(name)))
        wrapper.set_attribute("data-dependend-group", form.graph.group_of(name))
        if not visible:
            wrapper.set_style("display", "none")
            if self.config.disable_hidden_inputs:
                for control in wrapper.iter_inputs():
                    control.set_disabled(True)


def render_form(form: Form, context: Optional[RenderContext] = None,
                values: Optional[Mapping[str, Any]] = None) -> RenderedForm:
    """Render one form in ``context`` (a new render pass when omitted)."""
    return FormRenderer(context).render(form, values)
