"""
Adapters that put Qt widgets behind the reactive element ABCs.

Normalizes Qt's inconsistent APIs:
- QLineEdit.text() vs QSpinBox.value() vs QComboBox.currentData()
- QLineEdit.setText() vs QSpinBox.setValue() vs QComboBox.setCurrentIndex()
- QWidget.setVisible() / setMaximumHeight() / QGraphicsOpacityEffect vs
  inline ``display`` / ``max-height`` / ``opacity`` styles

With these adapters the TransitionRunner drives a Qt form exactly as it
drives the in-memory element tree.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

from PyQt6.QtWidgets import (
    QAbstractButton, QAbstractSpinBox, QComboBox, QDoubleSpinBox, QGraphicsOpacityEffect,
    QLineEdit, QPlainTextEdit, QSpinBox, QTextEdit, QWidget,
)

from html_formgen.protocols.element_protocols import InputContainer, InputControl, Styleable

logger = logging.getLogger(__name__)

# QWIDGETSIZE_MAX
MAX_WIDGET_SIZE = 16777215


class QtInputAdapter(InputControl):
    """Base adapter; enable/disable is the same for every QWidget."""

    _widget_type: Type[QWidget] = QWidget

    def __init__(self, widget: QWidget):
        if not isinstance(widget, self._widget_type):
            raise TypeError(f"{type(self).__name__} cannot wrap {type(widget).__name__}")
        self.widget = widget

    @property
    def is_checkable(self) -> bool:
        return False

    def is_checked(self) -> bool:
        return False

    def set_checked(self, checked: bool) -> None:
        raise TypeError(f"{type(self.widget).__name__} is not checkable")

    def set_disabled(self, disabled: bool) -> None:
        self.widget.setEnabled(not disabled)

    def is_disabled(self) -> bool:
        return not self.widget.isEnabled()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.widget.objectName() or type(self.widget).__name__})"


class LineEditAdapter(QtInputAdapter):
    _widget_type = QLineEdit

    def get_value(self) -> Any:
        return self.widget.text()

    def set_value(self, value: Any) -> None:
        self.widget.setText("" if value is None else str(value))


class TextEditAdapter(QtInputAdapter):
    """QTextEdit and QPlainTextEdit."""
    _widget_type = (QTextEdit, QPlainTextEdit)

    def get_value(self) -> Any:
        return self.widget.toPlainText()

    def set_value(self, value: Any) -> None:
        self.widget.setPlainText("" if value is None else str(value))


class SpinBoxAdapter(QtInputAdapter):
    """Spin boxes clear to their minimum."""
    _widget_type = (QSpinBox, QDoubleSpinBox)

    def get_value(self) -> Any:
        return self.widget.value()

    def set_value(self, value: Any) -> None:
        if value is None or value == "":
            self.widget.setValue(self.widget.minimum())
        elif isinstance(self.widget, QSpinBox):
            self.widget.setValue(int(value))
        else:
            self.widget.setValue(float(value))


class ComboBoxAdapter(QtInputAdapter):
    """
    QComboBox whose item data carries the option value.

    Items without data use their text as value, so a placeholder item with
    text "" makes the combo clearable like an HTML select.
    """
    _widget_type = QComboBox

    def _item_value(self, index: int) -> str:
        data = self.widget.itemData(index)
        return self.widget.itemText(index) if data is None else str(data)

    def get_value(self) -> Any:
        index = self.widget.currentIndex()
        return "" if index < 0 else self._item_value(index)

    def set_value(self, value: Any) -> None:
        target = "" if value is None else str(value)
        for index in range(self.widget.count()):
            if self._item_value(index) == target:
                self.widget.setCurrentIndex(index)
                return
        if target == "":
            self.widget.setCurrentIndex(-1)
            return
        raise ValueError(f"{self!r} has no option {target!r}")


class CheckableAdapter(QtInputAdapter):
    """QCheckBox and QRadioButton."""
    _widget_type = QAbstractButton

    @property
    def is_checkable(self) -> bool:
        return True

    def get_value(self) -> Any:
        return self.widget.isChecked()

    def set_value(self, value: Any) -> None:
        self.set_checked(bool(value))

    def is_checked(self) -> bool:
        return self.widget.isChecked()

    def set_checked(self, checked: bool) -> None:
        # An auto-exclusive radio cannot be unchecked directly
        exclusive = self.widget.autoExclusive()
        if not checked and exclusive:
            self.widget.setAutoExclusive(False)
        self.widget.setChecked(checked)
        if not checked and exclusive:
            self.widget.setAutoExclusive(True)


# Ordered: the first matching widget type wins
INPUT_ADAPTERS: Tuple[Type[QtInputAdapter], ...] = (
    LineEditAdapter,
    TextEditAdapter,
    SpinBoxAdapter,
    ComboBoxAdapter,
    CheckableAdapter,
)


def is_input_widget(widget: QWidget) -> bool:
    return any(isinstance(widget, adapter._widget_type) for adapter in INPUT_ADAPTERS)


def adapt_input(widget: QWidget) -> QtInputAdapter:
    """
    Wrap a Qt input widget.

    Raises:
        TypeError: If no adapter supports the widget type
    """
    for adapter in INPUT_ADAPTERS:
        if isinstance(widget, adapter._widget_type):
            return adapter(widget)
    raise TypeError(
        f"No input adapter for {type(widget).__name__}. "
        f"Supported: {[a.__name__ for a in INPUT_ADAPTERS]}"
    )


class QtFieldContainer(Styleable, InputContainer):
    """
    Field wrapper widget seen through inline-style semantics.

    ``display: none`` hides the widget, ``opacity`` maps to a
    QGraphicsOpacityEffect and ``max-height`` to setMaximumHeight. Other
    properties are only recorded.
    """

    def __init__(self, widget: QWidget):
        self.widget = widget
        self._style: Dict[str, str] = {}
        self._adapters: Dict[int, QtInputAdapter] = {}
        self._opacity: Optional[QGraphicsOpacityEffect] = None

    def set_style(self, name: str, value: str) -> None:
        if value == "":
            self._style.pop(name, None)
        else:
            self._style[name] = value

        if name == "display":
            self.widget.setHidden(value == "none")
        elif name == "opacity":
            self._set_opacity(1.0 if value == "" else float(value))
        elif name == "max-height":
            self.widget.setMaximumHeight(MAX_WIDGET_SIZE if value == "" else _pixels(value))

    def get_style(self, name: str) -> str:
        return self._style.get(name, "")

    @property
    def content_height(self) -> int:
        return self.widget.sizeHint().height()

    @property
    def is_displayed(self) -> bool:
        return not self.widget.isHidden()

    def _set_opacity(self, opacity: float) -> None:
        if self._opacity is None:
            self._opacity = QGraphicsOpacityEffect(self.widget)
            self.widget.setGraphicsEffect(self._opacity)
        self._opacity.setOpacity(opacity)

    def iter_inputs(self) -> Iterator[QtInputAdapter]:
        for child in self._input_widgets():
            key = id(child)
            if key not in self._adapters:
                self._adapters[key] = adapt_input(child)
            yield self._adapters[key]

    def _input_widgets(self) -> List[QWidget]:
        widgets = [self.widget] if is_input_widget(self.widget) else []
        for child in self.widget.findChildren(QWidget):
            # Line edits embedded in spin boxes and combos belong to their owner
            if isinstance(child.parent(), (QAbstractSpinBox, QComboBox)):
                continue
            if is_input_widget(child):
                widgets.append(child)
        return widgets

    def __repr__(self) -> str:
        return f"QtFieldContainer({self.widget.objectName() or type(self.widget).__name__})"


def _pixels(value: str) -> int:
    return int(float(value[:-2])) if value.endswith("px") else int(float(value))
