"""Tests for core utilities and services."""

import logging

import pytest

from html_formgen import configure_logging
from html_formgen.core import ImmediateScheduler, ObserverList, RenderContext, RenderGuard, ScriptKind, StoppableEvent
from html_formgen.core import sanitize_identifier
from html_formgen.protocols import FormGenConfig, get_form_config, set_form_config
from html_formgen.services import (
    ControllerFlag,
    FieldEvent,
    FieldEventDispatcher,
    FieldEventType,
    FlagContextManager,
    RequiredToggler,
)


def test_render_guard_once():
    guard = RenderGuard()
    calls = []

    def generate():
        calls.append(1)
        return "<script></script>"

    assert guard.once_for("dependency:signup", generate) == "<script></script>"
    assert guard.once_for("dependency:signup", generate) == ""
    assert calls == [1]
    assert guard.is_consumed("dependency:signup")

    guard.reset()
    assert not guard.is_consumed("dependency:signup")
    assert len(guard) == 0


def test_render_guard_failed_generator_can_retry():
    """A generator that raises leaves the key free for the next attempt."""
    guard = RenderGuard()

    def broken():
        raise RuntimeError("template error")

    with pytest.raises(RuntimeError):
        guard.once_for("dependency:signup", broken)
    assert not guard.is_consumed("dependency:signup")
    assert guard.once_for("dependency:signup", lambda: "<script></script>") == "<script></script>"
    assert guard.is_consumed("dependency:signup")


def test_render_guard_nested_call_for_same_key():
    guard = RenderGuard()
    nested = []

    def generate():
        nested.append(guard.once_for("tree:acl", lambda: "inner"))
        return "outer"

    assert guard.once_for("tree:acl", generate) == "outer"
    assert nested == [""]
    assert len(guard) == 1


def test_render_context_namespaces_kinds(render_context):
    assert render_context.emit_once(ScriptKind.DEPENDENCY, "x", lambda: "a") == "a"
    assert render_context.emit_once(ScriptKind.CHECKBOX_TREE, "x", lambda: "b") == "b"
    assert render_context.emit_once(ScriptKind.REPEATER, "x", lambda: "c") == "c"
    assert render_context.is_rendered(ScriptKind.DEPENDENCY, "x")
    assert not RenderContext().is_rendered(ScriptKind.DEPENDENCY, "x")


def test_sanitize_identifier():
    assert sanitize_identifier("my-form.1") == "my_form_1"
    assert sanitize_identifier("ok_id") == "ok_id"


def test_observer_priority_and_stop():
    observers = ObserverList()
    order = []

    def low(event):
        order.append("low")

    def high(event):
        order.append("high")

    def stopper(event):
        order.append("stop")
        event.stop_propagation()

    observers.register(low)
    observers.register(high, priority=10)
    observers.dispatch(StoppableEvent())
    assert order == ["high", "low"]

    order.clear()
    observers.register(stopper, priority=5)
    observers.dispatch(StoppableEvent())
    assert order == ["high", "stop"]

    assert observers.unregister(stopper)
    assert not observers.unregister(stopper)
    assert len(observers) == 2


def test_manual_scheduler_order_and_cancel(manual_scheduler):
    ran = []
    manual_scheduler.call_later(20, lambda: ran.append("b"))
    manual_scheduler.call_later(10, lambda: ran.append("a"))
    cancelled = manual_scheduler.call_later(15, lambda: ran.append("never"))
    cancelled.cancel()

    assert manual_scheduler.advance(9) == 0
    assert manual_scheduler.pending == 2
    assert manual_scheduler.advance(11) == 2
    assert ran == ["a", "b"]
    assert not cancelled.active


def test_immediate_scheduler_runs_now():
    ran = []
    handle = ImmediateScheduler().call_later(500, lambda: ran.append(1))
    assert ran == [1]
    assert not handle.active


class Flagged:
    def __init__(self):
        self._evaluating = False
        self._initializing = False


def test_flags_restored_on_error():
    obj = Flagged()
    with pytest.raises(KeyError):
        with FlagContextManager.manage_flags(obj, _evaluating=True):
            assert FlagContextManager.is_flag_set(obj, ControllerFlag.EVALUATING)
            raise KeyError("boom")
    assert obj._evaluating is False


def test_unknown_flag_rejected():
    with pytest.raises(ValueError):
        with FlagContextManager.manage_flags(Flagged(), _rendering=True):
            pass


def test_initializing_flag():
    obj = Flagged()
    with FlagContextManager.initializing(obj):
        assert FlagContextManager.get_flag_state(obj) == {"_evaluating": False, "_initializing": True}
    assert obj._initializing is False


def test_dispatcher_field_listeners_run_before_global():
    dispatcher = FieldEventDispatcher()
    order = []
    dispatcher.add_listener(FieldEventType.SHOW, lambda e: order.append("global"))
    dispatcher.add_listener(FieldEventType.SHOW, lambda e: order.append("field"), field_name="x")

    event = dispatcher.dispatch("x", FieldEventType.SHOW, None, visible=True)
    assert order == ["field", "global"]
    assert isinstance(event, FieldEvent)
    assert event.get("visible") is True
    assert dispatcher.has_listeners(FieldEventType.SHOW)
    assert not dispatcher.has_listeners(FieldEventType.HIDE, "x")


def test_required_toggler():
    required = {"company_name": True}
    dispatcher = FieldEventDispatcher()
    RequiredToggler(required.__setitem__, ["company_name"]).subscribe(dispatcher)

    dispatcher.dispatch("company_name", FieldEventType.HIDE)
    assert required["company_name"] is False
    dispatcher.dispatch("company_name", FieldEventType.SHOW)
    assert required["company_name"] is True


def test_form_config_global():
    assert get_form_config().wrap_scripts is True
    set_form_config(FormGenConfig(wrap_scripts=False))
    assert get_form_config().wrap_scripts is False


def test_configure_logging_single_handler():
    root = configure_logging(logging.DEBUG)
    try:
        configure_logging(logging.DEBUG)
        marked = [h for h in root.handlers if getattr(h, "_html_formgen_handler", False)]
        assert len(marked) == 1
        assert root.name == "html_formgen"
        assert root.level == logging.DEBUG
    finally:
        for handler in list(root.handlers):
            if getattr(handler, "_html_formgen_handler", False):
                root.removeHandler(handler)
        root.setLevel(logging.NOTSET)
