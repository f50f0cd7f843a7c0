"""Tests for the Qt widget adapters, QTimer scheduler and visibility binder."""

import pytest

pytest.importorskip("PyQt6.QtWidgets")

from PyQt6.QtTest import QTest
from PyQt6.QtWidgets import QComboBox, QLabel, QLineEdit, QRadioButton, QSpinBox, QVBoxLayout, QWidget

from html_formgen.forms import FormBuilder
from html_formgen.qt import (
    ComboBoxAdapter,
    QtFieldContainer,
    QtTimerScheduler,
    QtVisibilityBinder,
    SpinBoxAdapter,
    adapt_input,
)


def test_line_edit_adapter(qapp):
    edit = QLineEdit()
    adapter = adapt_input(edit)
    adapter.set_value("hello")
    assert edit.text() == "hello"
    assert adapter.get_value() == "hello"
    adapter.set_disabled(True)
    assert adapter.is_disabled()


def test_radio_can_be_unchecked(qapp):
    parent = QWidget()
    first = QRadioButton("A", parent)
    QRadioButton("B", parent)
    adapter = adapt_input(first)

    adapter.set_checked(True)
    assert first.isChecked()
    adapter.set_checked(False)
    assert not first.isChecked()
    assert first.autoExclusive()


def test_combo_adapter_values(qapp):
    combo = QComboBox()
    combo.addItem("")
    combo.addItem("Business", "business")
    adapter = adapt_input(combo)
    assert isinstance(adapter, ComboBoxAdapter)

    adapter.set_value("business")
    assert adapter.get_value() == "business"
    adapter.set_value("")
    assert combo.currentIndex() == 0
    with pytest.raises(ValueError):
        adapter.set_value("enterprise")


def test_unsupported_widget_rejected(qapp):
    with pytest.raises(TypeError):
        adapt_input(QLabel("text"))


def test_spin_box_inputs_exclude_inner_line_edit(qapp):
    row = QWidget()
    layout = QVBoxLayout(row)
    spin = QSpinBox()
    spin.setMinimum(1)
    layout.addWidget(spin)

    inputs = list(QtFieldContainer(row).iter_inputs())
    assert len(inputs) == 1
    assert isinstance(inputs[0], SpinBoxAdapter)

    spin.setValue(5)
    inputs[0].set_value("")
    assert spin.value() == 1


def test_container_display_and_opacity(qapp):
    window = QWidget()
    row = QWidget(window)
    container = QtFieldContainer(row)

    container.set_style("display", "none")
    assert row.isHidden()
    assert not container.is_displayed
    container.set_style("display", "")
    assert container.is_displayed

    container.set_style("opacity", "0")
    assert container.get_style("opacity") == "0"
    assert row.graphicsEffect() is not None


def test_qt_timer_scheduler(qapp):
    scheduler = QtTimerScheduler()
    ran = []
    scheduler.call_later(10, lambda: ran.append("fired"))
    cancelled = scheduler.call_later(10, lambda: ran.append("cancelled"))
    cancelled.cancel()

    QTest.qWait(100)
    assert ran == ["fired"]
    assert scheduler.pending == 0


def make_binder(scheduler):
    builder = FormBuilder("qt_signup")
    builder.add_select("account_type", [("personal", "Personal"), ("business", "Business")])
    builder.add_text("company_name").depends_on("account_type", "business")
    form = builder.build()

    window = QWidget()
    combo = QComboBox(window)
    combo.addItem("")
    combo.addItem("Personal", "personal")
    combo.addItem("Business", "business")

    row = QWidget(window)
    company_name = QLineEdit(row)

    binder = QtVisibilityBinder(form, {"company_name": row}, scheduler)
    binder.bind_input("account_type", combo)
    return window, binder, combo, row, company_name


def test_visibility_binder_scenario(qapp, manual_scheduler):
    window, binder, combo, row, company_name = make_binder(manual_scheduler)

    binder.init()
    assert binder.visibility() == {"company_name": False}
    assert row.isHidden()
    assert not company_name.isEnabled()
    assert manual_scheduler.pending == 0

    combo.setCurrentIndex(2)
    assert binder.visibility() == {"company_name": True}
    assert binder.is_displayed("company_name")
    assert company_name.isEnabled()

    manual_scheduler.run_all()
    company_name.setText("Acme")

    combo.setCurrentIndex(1)
    assert binder.visibility() == {"company_name": False}
    manual_scheduler.run_all()
    assert row.isHidden()
    assert company_name.text() == ""
    assert not company_name.isEnabled()


def test_visibility_binder_reshow_keeps_value(qapp, manual_scheduler):
    window, binder, combo, row, company_name = make_binder(manual_scheduler)
    binder.init()

    combo.setCurrentIndex(2)
    manual_scheduler.run_all()
    company_name.setText("Acme")

    combo.setCurrentIndex(1)
    combo.setCurrentIndex(2)
    manual_scheduler.run_all()

    assert binder.is_displayed("company_name")
    assert company_name.isEnabled()
    assert company_name.text() == "Acme"
