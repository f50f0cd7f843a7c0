"""Tests for the element tree and the reactive controllers."""

import logging

import pytest

from conftest import PERMISSIONS, chain_builder, contacts_builder, signup_builder
from html_formgen.animation import AnimationConfig
from html_formgen.core import RenderContext
from html_formgen.forms import FormBuilder, FormRenderer
from html_formgen.protocols import FormGenConfig, set_form_config
from html_formgen.reactive import (
    ADD_EVENT,
    CHANGE_EVENT,
    HIDDEN_EVENT,
    REMOVE_EVENT,
    SHOWN_EVENT,
    CheckboxTreeController,
    Document,
    Element,
    ReactiveController,
    RepeaterController,
    create_element,
    parse_html,
)
from html_formgen.services import FieldEventDispatcher, FieldEventType
from html_formgen.tree import CascadeMode


def mount(form, scheduler=None, dispatcher=None):
    """Render ``form`` and bind a ReactiveController to the result."""
    rendered = FormRenderer(RenderContext()).render(form)
    document = rendered.document
    controller = ReactiveController(document, form.form_id, form.animation, scheduler, dispatcher)
    assert controller.init()
    return document, controller


def wrapper_of(document: Document, name: str) -> Element:
    return document.query_selector(f'[data-field="{name}"]')


# ------------------------------------------------------------------ element tree

def test_selectors_and_closest():
    form = create_element("form", {"id": "f"}, [
        create_element("div", {"data-field": "a"}, [
            create_element("input", {"type": "checkbox", "data-dependency": "true"}),
            create_element("input", {"type": "text", "data-dependency": "true"}),
        ]),
    ])
    checkbox = form.query_selector('div > input[type="checkbox"][data-dependency]')
    assert checkbox.element_type == "checkbox"
    assert len(form.query_selector_all('[data-field="a"] input')) == 2
    assert checkbox.closest("[data-field]").get_attribute("data-field") == "a"
    assert checkbox.closest("form") is form
    assert checkbox.matches("input[data-dependency]")
    assert [el.name for el in form.child_elements()] == ["div"]


def test_boolean_and_empty_attributes():
    element = create_element("div", {"data-dependends": "", "hidden": True, "gone": False})
    assert element.to_html() == '<div data-dependends="" hidden></div>'
    element.set_style("display", "none")
    assert element.to_html() == '<div data-dependends="" hidden style="display: none;"></div>'
    element.set_style("display", "")
    assert not element.has_attribute("style")


def test_select_value_and_radio_group():
    form = create_element("form")
    select = form.append(create_element("select", children=[
        create_element("option", {"value": ""}),
        create_element("option", {"value": "a"}),
    ]))
    assert select.get_value() == ""
    select.set_value("a")
    assert select.get_value() == "a"

    first = form.append(create_element("input", {"type": "radio", "name": "r", "value": "1"}))
    second = form.append(create_element("input", {"type": "radio", "name": "r", "value": "2"}))
    first.click()
    second.click()
    assert not first.is_checked() and second.is_checked()


def test_textarea_value_is_its_text():
    textarea = create_element("textarea", {"name": "notes"}, text="draft")
    assert textarea.get_value() == "draft"
    textarea.set_value("<b>final</b>")
    assert textarea.get_value() == "<b>final</b>"
    assert textarea.to_html() == '<textarea name="notes">&lt;b&gt;final&lt;/b&gt;</textarea>'


def test_events_bubble():
    outer = create_element("div")
    inner = outer.append(create_element("input", {"type": "text"}))
    seen = []
    outer.add_event_listener("change", lambda e: seen.append((e.target, e.current_target)))
    inner.change("x")
    assert len(seen) == 1
    assert seen[0][0] is inner and seen[0][1] is outer


def test_events_reach_the_document():
    document = parse_html('<form id="f"><input id="f-x" type="text"></form>')
    seen = []
    document.add_event_listener("change", lambda e: seen.append(e.current_target))
    document.get_element_by_id("f-x").change("typed")
    assert seen == [document]
    assert document.get_element_by_id("f-x").get_value() == "typed"


def test_parse_html_round_trip(signup_form):
    markup = FormRenderer(RenderContext()).render(signup_form).markup
    document = parse_html(markup)
    assert isinstance(document.get_element_by_id("signup"), Element)
    wrapper = wrapper_of(document, "company_size")
    assert wrapper.get_attribute("data-dependend-group") == "account_type"
    assert wrapper.get_style("display") == "none"
    assert document.to_html() == markup


# ------------------------------------------------------------ reactive controller

def test_account_type_scenario(signup_form, manual_scheduler):
    document, controller = mount(signup_form, manual_scheduler)
    select = document.get_element_by_id("signup-account_type")
    wrapper = wrapper_of(document, "company_size")
    size_input = document.get_element_by_id("signup-company_size")

    assert controller.visibility() == {"company_size": False}

    select.change("business")
    assert controller.visibility() == {"company_size": True}
    assert wrapper.get_style("display") == ""
    assert not size_input.is_disabled()

    select.change("personal")
    assert controller.visibility() == {"company_size": False}
    manual_scheduler.run_all()
    assert wrapper.get_style("display") == "none"
    assert size_input.is_disabled()


def test_empty_select_resets_group(manual_scheduler):
    form = signup_builder(account_type="business").build()
    document, controller = mount(form, manual_scheduler)
    assert controller.visibility() == {"company_size": True}

    document.get_element_by_id("signup-account_type").change("")
    assert controller.visibility() == {"company_size": False}


def test_chain_converges_in_one_handler(manual_scheduler):
    form = chain_builder(a="x", b="y").build()
    document, controller = mount(form, manual_scheduler)
    assert controller.visibility() == {"b": True, "c": True}

    document.get_element_by_id("chain-a").change("z")
    assert controller.visibility() == {"b": False, "c": False}

    # Re-shown before the hide finished: b kept its value, so c comes back too
    document.get_element_by_id("chain-a").change("x")
    assert controller.visibility() == {"b": True, "c": True}


def test_hide_clears_so_chain_stays_down(manual_scheduler):
    form = chain_builder(a="x", b="y").build()
    document, controller = mount(form, manual_scheduler)
    a = document.get_element_by_id("chain-a")

    a.change("z")
    manual_scheduler.run_all()
    assert document.get_element_by_id("chain-b").get_value() == ""

    a.change("x")
    assert controller.visibility() == {"b": True, "c": False}


def test_rapid_toggle_never_disables_visible_field(manual_scheduler):
    document, controller = mount(signup_builder().build(), manual_scheduler)
    select = document.get_element_by_id("signup-account_type")
    size_input = document.get_element_by_id("signup-company_size")

    select.change("business")
    manual_scheduler.run_all()
    size_input.change("12")

    select.change("personal")
    manual_scheduler.advance(100)
    select.change("enterprise")
    manual_scheduler.run_all()

    assert controller.visibility() == {"company_size": True}
    assert not size_input.is_disabled()
    assert size_input.get_value() == "12"
    assert wrapper_of(document, "company_size").get_style("display") == ""


def test_initial_state_detection_is_instant(manual_scheduler):
    """Values set before init are applied without waiting for transitions."""
    form = signup_builder().build()
    rendered = FormRenderer(RenderContext()).render(form)
    document = rendered.document
    document.get_element_by_id("signup-account_type").set_value("enterprise")

    controller = ReactiveController(document, "signup", form.animation, manual_scheduler)
    controller.init()

    assert wrapper_of(document, "company_size").get_style("display") == ""
    assert manual_scheduler.pending == 0


def test_shown_and_hidden_events(manual_scheduler):
    document, controller = mount(signup_builder().build(), manual_scheduler)
    events = []
    document.add_event_listener(SHOWN_EVENT, lambda e: events.append(SHOWN_EVENT))
    document.add_event_listener(HIDDEN_EVENT, lambda e: events.append(HIDDEN_EVENT))
    select = document.get_element_by_id("signup-account_type")

    select.change("business")
    assert events == []
    manual_scheduler.run_all()
    select.change("personal")
    manual_scheduler.run_all()
    assert events == [SHOWN_EVENT, HIDDEN_EVENT]


def test_dispatcher_receives_transitions():
    dispatcher = FieldEventDispatcher()
    seen = []
    dispatcher.add_listener(FieldEventType.SHOW, lambda e: seen.append(("show", e.field_name)))
    dispatcher.add_listener(FieldEventType.HIDE, lambda e: seen.append(("hide", e.field_name)))
    document, _ = mount(signup_builder().build(), dispatcher=dispatcher)

    document.get_element_by_id("signup-account_type").change("business")
    document.get_element_by_id("signup-account_type").change("personal")
    assert seen == [("show", "company_size"), ("hide", "company_size")]


def test_checkbox_controller_with_all_sentinel():
    builder = FormBuilder("prefs")
    builder.add_checkbox("newsletter")
    builder.add_select("frequency", ["daily", "weekly"]).depends_on("newsletter", "all")
    document, controller = mount(builder.disable_dependency_animation().build())

    checkbox = document.get_element_by_id("prefs-newsletter")
    checkbox.click()
    assert controller.visibility() == {"frequency": True}
    checkbox.click()
    assert controller.visibility() == {"frequency": False}


def test_nested_group_hides_inner_dependents():
    builder = FormBuilder("nested")
    builder.add_select("account_type", ["personal", "business"])
    with builder.group("company") as company:
        company.depends_on("account_type", "business")
        builder.add_checkbox("has_vat")
        builder.add_text("vat_number").depends_on("has_vat", "1")
    form = builder.disable_dependency_animation().set_data({"account_type": "business", "has_vat": True}).build()
    document, controller = mount(form)
    assert controller.visibility() == {"company": True, "vat_number": True}

    document.get_element_by_id("nested-account_type").change("personal")
    assert controller.visibility() == {"company": False, "vat_number": False}
    assert not document.get_element_by_id("nested-has_vat").is_checked()


def test_missing_form_warns(caplog):
    controller = ReactiveController(Document(), "ghost")
    assert controller.init() is False
    assert "Form not found: #ghost" in caplog.text


def test_debug_tracing_follows_config(caplog):
    """FormGenConfig.debug_reactive turns on cascade tracing without touching module flags."""
    document, _ = mount(signup_builder().disable_dependency_animation().build())
    select = document.get_element_by_id("signup-account_type")

    with caplog.at_level(logging.INFO, logger="html_formgen.reactive"):
        select.change("business")
        assert "CHANGE account_type" not in caplog.text

        set_form_config(FormGenConfig(debug_reactive=True))
        select.change("personal")
    assert "[ReactiveController] CHANGE account_type in group 'account_type'" in caplog.text


def test_destroy_unbinds(signup_form):
    document, controller = mount(signup_form)
    select = document.get_element_by_id("signup-account_type")
    assert select.listener_count("change") == 1
    controller.destroy()
    assert select.listener_count("change") == 0


def test_client_matches_server_for_every_value():
    form = signup_builder().disable_dependency_animation().build()
    document, controller = mount(form)
    select = document.get_element_by_id("signup-account_type")
    for value in ("", "personal", "business", "enterprise"):
        select.change(value)
        assert controller.visibility() == form.evaluate({"account_type": value}).visibility


def test_shared_group_with_gated_controller_matches_server():
    """b toggles group g but is itself revealed by z; client and server agree at every step."""
    builder = FormBuilder("shared")
    builder.add_select("a", ["x", "y"]).controls("g")
    builder.add_text("d1").depends_on("a", "x")
    builder.add_select("z", ["on", "off"])
    builder.add_select("b", ["yes", "no"]).controls("g").depends_on("z", "on")
    builder.add_text("d2").depends_on("b", "yes")
    form = builder.disable_dependency_animation().set_data({"a": "x", "z": "on", "b": "yes"}).build()
    document, controller = mount(form)

    def client_values():
        return {name: document.get_element_by_id(f"shared-{name}").get_value() for name in ("a", "z", "b")}

    assert controller.visibility() == {"d1": True, "b": True, "d2": True}
    assert controller.visibility() == form.evaluate(client_values()).visibility

    for name, value in (("z", "off"), ("z", "on"), ("b", "yes"), ("a", "y"), ("b", "no")):
        document.get_element_by_id(f"shared-{name}").change(value)
        assert controller.visibility() == form.evaluate(client_values()).visibility


# -------------------------------------------------------- checkbox tree controller

def mount_tree(mode=CascadeMode.CASCADE, nodes=PERMISSIONS):
    builder = FormBuilder("acl")
    builder.add_checkbox_tree("perms", nodes, mode=mode)
    form = builder.build()
    rendered = FormRenderer(RenderContext()).render(form)
    controller = CheckboxTreeController(rendered.document, form.tree("perms").tree_id, mode)
    assert controller.init()
    return rendered.document, controller


def test_tree_controller_parent_child():
    document, controller = mount_tree()
    changes = []
    controller.container.add_event_listener(CHANGE_EVENT, lambda e: changes.append(e.detail))

    document.query_selector('input[value="child1"]').click()
    assert controller.state()["parent"] == (False, True)
    assert changes[-1] == {"treeId": "acl_perms", "value": "child1", "checkedValues": ["child1"]}

    document.query_selector('input[value="child2"]').click()
    assert controller.state()["parent"] == (True, False)

    document.query_selector('input[value="parent"]').click()
    assert controller.get_checked_values() == []


def test_tree_controller_independent():
    document, controller = mount_tree(CascadeMode.INDEPENDENT)
    document.query_selector('input[value="parent"]').click()
    assert controller.get_checked_values() == ["parent"]


def test_tree_controller_rejects_disabled():
    nodes = [{"value": "parent", "children": [{"value": "child1"}, {"value": "child2", "disabled": True}]}]
    document, controller = mount_tree(nodes=nodes)
    locked = document.query_selector('input[value="child2"]')

    assert locked.click() is None
    locked.set_checked(True)
    assert controller.handle_toggle(locked) is False
    assert not locked.is_checked()


def test_tree_controller_set_checked_values():
    document, controller = mount_tree()
    controller.set_checked_values(["child1", "child2"])
    assert controller.state()["parent"] == (True, False)
    assert controller.get_checked_values() == ["parent", "child1", "child2"]


# -------------------------------------------------------------------- repeater

def mount_repeater(form):
    document, controller = mount(form)
    repeater = RepeaterController(document, f"{form.form_id}-contacts")
    assert repeater.init()
    return document, controller, repeater


def test_repeater_add_and_remove_rows():
    form = contacts_builder(account_type="business", contacts=[{"contact_name": "Ann", "role": "support"}]).build()
    document, _, repeater = mount_repeater(form)
    events = []
    document.add_event_listener(ADD_EVENT, lambda e: events.append((ADD_EVENT, e.detail["index"])))
    document.add_event_listener(REMOVE_EVENT, lambda e: events.append((REMOVE_EVENT, e.detail["count"])))
    add_button = document.query_selector("[data-repeater-add]")

    add_button.click()
    assert repeater.row_count == 2
    row = repeater.rows()[1]
    name_input = row.query_selector("input")
    assert name_input.get_attribute("name") == "contacts[1][contact_name]"
    assert name_input.get_attribute("id") == "crm-contacts-1-contact_name"
    assert row.query_selector("label").get_attribute("for") == "crm-contacts-1-contact_name"
    assert row.query_selector("[data-repeater-row-number]").get_text() == "#2"
    assert not name_input.is_disabled()
    assert not row.has_attribute("data-repeater-template")
    assert row.get_style("display") == ""

    name_input.change("Bob")
    assert repeater.get_data() == [
        {"contact_name": "Ann", "role": "support"},
        {"contact_name": "Bob", "role": ""},
    ]

    add_button.click()
    assert add_button.is_disabled()
    assert add_button.click() is None
    assert repeater.row_count == 3

    repeater.rows()[0].query_selector("[data-repeater-remove]").click()
    assert repeater.row_count == 2
    assert not add_button.is_disabled()
    assert events == [(ADD_EVENT, 1), (ADD_EVENT, 2), (REMOVE_EVENT, 2)]


def test_repeater_keeps_min_rows(caplog):
    _, _, repeater = mount_repeater(contacts_builder(account_type="business").build())
    row = repeater.rows()[0]

    assert row.query_selector("[data-repeater-remove]").is_disabled()
    assert repeater.remove_row(row) is False
    assert repeater.row_count == 1
    assert "Minimum number of rows required (1)" in caplog.text


def test_repeater_fills_min_rows_on_init():
    builder = FormBuilder("crm")
    with builder.repeater("contacts"):
        builder.add_text("contact_name")
    document = FormRenderer(RenderContext()).render(builder.build()).document
    assert document.query_selector_all("[data-repeater-item]") == []

    repeater = RepeaterController(document, "crm-contacts", min_rows=2)
    repeater.init()
    names = [row.query_selector("input").get_attribute("name") for row in repeater.rows()]
    assert names == ["contacts[0][contact_name]", "contacts[1][contact_name]"]


def test_repeater_missing_container_warns(caplog):
    assert RepeaterController(Document(), "ghost").init() is False
    assert "Container not found: ghost" in caplog.text


def test_row_added_to_hidden_repeater_stays_disabled():
    """Rows cloned while their repeater is hidden join the dependency state."""
    document, controller, repeater = mount_repeater(contacts_builder().build())
    assert controller.visibility() == {"contacts": False}

    row = repeater.add_row()
    assert all(control.is_disabled() for control in row.iter_inputs())

    document.get_element_by_id("crm-account_type").change("business")
    assert controller.visibility() == {"contacts": True}
    assert not any(control.is_disabled() for control in row.iter_inputs())
    template = document.query_selector("[data-repeater-template]")
    assert all(control.is_disabled() for control in template.query_selector_all("input, select"))


def test_bind_within_adopts_new_controllers():
    document, controller = mount(signup_builder(account_type="personal").disable_dependency_animation().build())
    form = document.get_element_by_id("signup")
    extra = form.append(create_element("div"))
    radio = extra.append(create_element("input", {
        "type": "radio",
        "name": "extra_type",
        "value": "business",
        "data-dependency": "true",
        "data-dependency-group": "account_type",
        "data-dependency-field": "account_type",
    }))

    controller.bind_within(extra)
    controller.bind_within(extra)
    assert radio.listener_count("change") == 1

    radio.click()
    assert controller.visibility() == {"company_size": True}
