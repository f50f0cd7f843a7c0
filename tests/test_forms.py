"""Tests for the form builder, field type registry, renderer and scripts."""

import pytest

from conftest import PERMISSIONS, contacts_builder, signup_builder
from html_formgen.animation import AnimationType
from html_formgen.core import DependencyCycleError, FormConfigurationError, RenderContext
from html_formgen.core.render_guard import ScriptKind
from html_formgen.forms import FIELD_TYPES, FormBuilder, FormRenderer, get_field_type, render_form
from html_formgen.forms.field_types import TextType
from html_formgen.protocols import FormGenConfig
from html_formgen.scripts import (
    dependency_namespace,
    generate_checkbox_tree_script,
    generate_dependency_script,
    generate_repeater_script,
    js_literal,
    repeater_namespace,
    tree_namespace,
)
from html_formgen.tree import CascadeMode


# ---------------------------------------------------------------------- builder

def test_duplicate_field_rejected():
    builder = FormBuilder("f")
    builder.add_text("name")
    with pytest.raises(FormConfigurationError):
        builder.add_text("name")


def test_dependent_in_two_groups_fails_at_build():
    builder = FormBuilder("f")
    builder.add_select("a", ["1"])
    builder.add_select("b", ["1"])
    builder.add_text("x").depends_on("a", "1").depends_on("b", "1")
    with pytest.raises(FormConfigurationError):
        builder.build()


def test_cycle_fails_at_build():
    builder = FormBuilder("f")
    builder.add_select("a", ["1"]).depends_on("b", "1")
    builder.add_select("b", ["1"]).depends_on("a", "1")
    with pytest.raises(DependencyCycleError):
        builder.build()


def test_unclosed_group_rejected():
    builder = FormBuilder("f")
    builder.group("g").__enter__()
    with pytest.raises(FormConfigurationError):
        builder.build()


def test_unknown_parent_rejected():
    builder = FormBuilder("f")
    builder.add_text("x", parent="nowhere")
    with pytest.raises(FormConfigurationError):
        builder.build()


def test_dependency_for_unknown_field_rejected():
    builder = FormBuilder("f")
    builder.add_select("a", ["1"])
    builder.add_dependency("ghost", "a", "1")
    with pytest.raises(FormConfigurationError):
        builder.build()


def test_declarations_adopt_controller_group():
    builder = FormBuilder("f")
    builder.add_checkbox("wifi").controls("extras")
    builder.add_text("notes").depends_on("wifi", "1")
    form = builder.build()
    assert form.graph.group_of("notes") == "extras"
    assert form.field("wifi").is_controller


def test_set_dependency_animation_merges():
    form = signup_builder().set_dependency_animation({"type": "slide"}, duration=150).build()
    assert form.animation.type is AnimationType.SLIDE
    assert form.animation.duration_ms == 150
    assert form.animation.enabled


# ----------------------------------------------------------------- field types

def test_field_type_registry():
    assert get_field_type("select") is FIELD_TYPES["select"]
    with pytest.raises(KeyError):
        get_field_type("colour-wheel")


def test_subtype_pipeline_runs_base_stages_first():
    class ColorType(TextType):
        _type_id = "test-color"

        def build_field(self, view):
            view.element.set_attribute("type", "color")

    try:
        builder = FormBuilder("theme")
        builder.add_text("accent")
        form = builder.build()
        view = get_field_type("test-color")().create_view(form.field("accent"), "#ff0000", "theme")
        assert view.element.get_attribute("type") == "color"
        assert view.element.get_attribute("id") == "theme-accent"
        assert view.element.get_value() == "#ff0000"
    finally:
        FIELD_TYPES.pop("test-color", None)


# -------------------------------------------------------------------- renderer

def test_dependent_wrapper_attributes(signup_form):
    rendered = FormRenderer(RenderContext()).render(signup_form)
    wrapper = rendered.element.query_selector('[data-field="company_size"]')

    assert wrapper.get_attribute("data-dependends") == ""
    assert wrapper.get_attribute("data-dependend") == "account_type-business account_type-enterprise"
    assert wrapper.get_attribute("data-dependend-group") == "account_type"
    assert wrapper.get_style("display") == "none"
    assert 'style="display: none;"' in rendered.markup
    assert rendered.visibility == {"company_size": False}


def test_controller_attributes(signup_form):
    rendered = FormRenderer(RenderContext()).render(signup_form)
    select = rendered.element.query_selector("#signup-account_type")

    assert select.get_attribute("data-dependency") == "true"
    assert select.get_attribute("data-dependency-group") == "account_type"
    assert select.get_attribute("data-dependency-field") == "account_type"


def test_hidden_dependents_are_disabled(signup_form):
    rendered = FormRenderer(RenderContext()).render(signup_form)
    assert rendered.element.query_selector("#signup-company_size").is_disabled()


def test_hidden_inputs_stay_enabled_when_configured(signup_form):
    rendered = FormRenderer(RenderContext(), FormGenConfig(disable_hidden_inputs=False)).render(signup_form)
    assert not rendered.element.query_selector("#signup-company_size").is_disabled()


def test_visible_dependent_has_no_display_style():
    rendered = render_form(signup_builder(account_type="enterprise").build())
    wrapper = rendered.element.query_selector('[data-field="company_size"]')
    assert wrapper.get_style("display") == ""
    assert not rendered.element.query_selector("#signup-company_size").is_disabled()


def test_group_renders_as_fieldset():
    builder = signup_builder()
    with builder.group("billing", label="Billing") as billing:
        billing.depends_on("account_type", "business")
        builder.add_text("vat_number")
    rendered = render_form(builder.build())

    fieldset = rendered.element.query_selector('fieldset[data-field="billing"]')
    assert fieldset.get_attribute("data-dependend") == "account_type-business"
    assert fieldset.child_elements()[0].name == "legend"
    assert fieldset.child_elements()[0].get_text() == "Billing"
    assert fieldset.query_selector("#signup-vat_number").is_disabled()


def test_server_side_mode_omits_hidden_dependents():
    form = signup_builder().enable_server_side_dependency_evaluation().build()
    rendered = render_form(form)
    assert rendered.omitted == ["company_size"]
    assert "company_size" not in rendered.markup

    rendered = render_form(form, values={"account_type": "business"})
    assert rendered.omitted == []
    assert "signup-company_size" in rendered.markup


def test_required_cleared_while_hidden():
    builder = FormBuilder("signup")
    builder.add_select("account_type", ["personal", "business"])
    builder.add_text("company_name", required=True).depends_on("account_type", "business")
    form = builder.clear_required_when_hidden().build()

    rendered = render_form(form)
    assert not rendered.element.query_selector("#signup-company_name").has_attribute("required")
    assert form.is_required("company_name") is False

    rendered = render_form(form, values={"account_type": "business"})
    assert rendered.element.query_selector("#signup-company_name").has_attribute("required")
    assert form.is_required("company_name") is True


def test_radio_and_checkbox_lists_render_as_labelled_inputs():
    builder = FormBuilder("prefs")
    builder.add_radio("size", ["s", "m"])
    builder.add_checkbox_group("tags", ["a", "b"])
    form = builder.set_data({"size": "m", "tags": ["b"]}).build()
    element = render_form(form).element

    radios = element.query_selector_all('input[name="size"]')
    assert [r.is_checked() for r in radios] == [False, True]
    tags = element.query_selector_all('input[type="checkbox"]')
    assert [t.get_attribute("name") for t in tags] == ["tags[]", "tags[]"]
    assert [t.is_checked() for t in tags] == [False, True]


def test_checkbox_tree_markup():
    builder = FormBuilder("acl")
    builder.add_checkbox_tree("perms", PERMISSIONS, mode=CascadeMode.INDEPENDENT)
    element = render_form(builder.set_data({"perms": ["child1"]}).build()).element

    container = element.query_selector("[data-checkbox-tree]")
    assert container.get_attribute("data-checkbox-tree") == "acl_perms"
    assert container.get_attribute("data-tree-mode") == "independent"
    checked = [c.get_attribute("value") for c in container.query_selector_all("input") if c.is_checked()]
    assert checked == ["child1"]


# --------------------------------------------------------------------- scripts

def test_scripts_emitted_once_per_render_pass(signup_form):
    context = RenderContext()
    renderer = FormRenderer(context)

    first = renderer.render(signup_form)
    second = renderer.render(signup_form)
    assert len(first.scripts) == 1
    assert second.scripts == []
    assert len(FormRenderer(RenderContext()).render(signup_form).scripts) == 1


def test_forms_without_dependencies_emit_no_script():
    builder = FormBuilder("plain")
    builder.add_text("name")
    assert render_form(builder.build()).scripts == []


def test_dependency_script_contents(signup_form):
    script = FormRenderer(RenderContext()).render(signup_form).scripts[0]
    assert script.startswith('<script type="text/javascript">')
    assert "window.FormGen_signup = FormGen_signup;" in script
    assert '"duration": 300' in script


def test_unwrapped_scripts():
    rendered = FormRenderer(RenderContext(), FormGenConfig(wrap_scripts=False)).render(
        signup_builder().build()
    )
    assert "<script" not in rendered.scripts[0]


def test_tree_script_per_tree():
    builder = FormBuilder("acl")
    builder.add_checkbox_tree("perms", PERMISSIONS)
    rendered = FormRenderer(RenderContext()).render(builder.build())

    assert len(rendered.scripts) == 1
    assert "CheckboxTree_acl_perms" in rendered.scripts[0]
    assert 'mode: "cascade"' in rendered.scripts[0]


def test_namespaces_are_sanitized():
    assert dependency_namespace("my-form.1") == "FormGen_my_form_1"
    assert tree_namespace("acl perms") == "CheckboxTree_acl_perms"
    assert "FormGen_my_form_1" in generate_dependency_script("my-form.1", wrap=False)
    assert 'mode: "independent"' in generate_checkbox_tree_script("t", CascadeMode.INDEPENDENT)


def test_js_literal_cannot_close_script():
    literal = js_literal("</script><b>")
    assert "</" not in literal
    assert literal == '"<\\/script><b>"'


# -------------------------------------------------------------------- repeater

def test_repeater_bounds_validated():
    builder = FormBuilder("f")
    with pytest.raises(FormConfigurationError):
        builder.repeater("items", min_rows=3, max_rows=2)
    with pytest.raises(FormConfigurationError):
        builder.repeater("more_items", max_rows=0)


def test_repeater_row_fields_cannot_take_part_in_dependencies():
    builder = FormBuilder("f")
    builder.add_select("a", ["1"])
    with builder.repeater("items"):
        builder.add_text("note").depends_on("a", "1")
    with pytest.raises(FormConfigurationError, match="cannot take part in dependencies"):
        builder.build()

    builder = FormBuilder("f")
    with builder.repeater("items"):
        builder.add_select("kind", ["x"]).controls()
    builder.add_text("detail").depends_on("kind", "x")
    with pytest.raises(FormConfigurationError, match="cannot take part in dependencies"):
        builder.build()


def test_repeater_cannot_nest_containers():
    builder = FormBuilder("f")
    with builder.repeater("items"):
        with builder.group("inner"):
            builder.add_text("note")
    with pytest.raises(FormConfigurationError, match="cannot contain group 'inner'"):
        builder.build()


def test_repeater_markup():
    form = contacts_builder(
        account_type="business",
        contacts=[{"contact_name": "Ann", "role": "support"}],
    ).build()
    element = render_form(form).element

    wrapper = element.query_selector('[data-field="contacts"]')
    assert wrapper.has_attribute("data-dependends")
    container = wrapper.query_selector('[data-repeater="crm-contacts"]')
    assert container.get_attribute("data-min-rows") == "1"
    assert container.get_attribute("data-max-rows") == "3"

    template = container.query_selector(":scope > [data-repeater-template]")
    assert template.get_style("display") == "none"
    template_input = template.query_selector("input")
    assert template_input.get_attribute("name") == "contacts[__index__][contact_name]"
    assert template_input.get_attribute("id") == "crm-contacts-__index__-contact_name"
    assert all(control.is_disabled() for control in template.query_selector_all("input, select"))

    rows = container.query_selector_all(":scope > [data-repeater-item]")
    assert len(rows) == 1
    name_input = rows[0].query_selector("#crm-contacts-0-contact_name")
    assert name_input.get_attribute("name") == "contacts[0][contact_name]"
    assert name_input.get_value() == "Ann"
    assert rows[0].query_selector('select[name="contacts[0][role]"]').get_value() == "support"
    assert rows[0].query_selector('label[for="crm-contacts-0-contact_name"]').get_text() == "Name"
    assert rows[0].query_selector("[data-repeater-row-number]").get_text() == "#1"
    # One row is the minimum
    assert rows[0].query_selector("[data-repeater-remove]").is_disabled()
    assert not container.query_selector("[data-repeater-add]").is_disabled()


def test_repeater_pads_to_min_rows_and_hides_with_its_dependency():
    element = render_form(contacts_builder().build()).element

    wrapper = element.query_selector('[data-field="contacts"]')
    assert wrapper.get_style("display") == "none"
    rows = wrapper.query_selector_all("[data-repeater-item]")
    assert len(rows) == 1
    assert rows[0].query_selector("input").get_value() == ""
    assert all(control.is_disabled() for control in wrapper.iter_inputs())


def test_repeater_truncates_rows_beyond_max(caplog):
    rows = [{"contact_name": str(i)} for i in range(5)]
    element = render_form(contacts_builder(account_type="business", contacts=rows).build()).element

    assert len(element.query_selector_all("[data-repeater-item]")) == 3
    assert element.query_selector("[data-repeater-add]").is_disabled()
    assert "has 5 rows, rendering the first 3" in caplog.text


def test_repeater_script_once_per_render_pass():
    form = contacts_builder().build()
    context = RenderContext()
    renderer = FormRenderer(context)

    first = renderer.render(form)
    assert len(first.scripts) == 2
    assert "window.Repeater_crm_contacts = Repeater_crm_contacts;" in first.scripts[1]
    assert context.is_rendered(ScriptKind.REPEATER, "crm-contacts")
    assert renderer.render(form).scripts == []


def test_repeater_script_contents():
    script = generate_repeater_script("crm-contacts", 1, 3, wrap=False)
    assert repeater_namespace("crm-contacts") == "Repeater_crm_contacts"
    assert "minRows: 1," in script
    assert "maxRows: 3," in script
    assert "new CustomEvent('repeater:add'" in script
    assert "new CustomEvent('repeater:remove'" in script
    assert 'placeholder: "__index__"' in script


def test_dependency_script_adopts_repeater_rows():
    script = generate_dependency_script("signup", wrap=False)
    assert "form.addEventListener('repeater:add', (e) => this.bindWithin(e.detail.row));" in script
    assert "input.closest('[data-repeater-template]')" in script
