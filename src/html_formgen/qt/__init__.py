"""
PyQt6 integration.

Optional layer (``pip install html-formgen[qt]``): QTimer scheduling,
widget adapters for the reactive ABCs and a binder that drives Qt widgets
from a built Form.
"""

from .scheduler import QtTimerScheduler, QtTimerHandle
from .adapters import (
    QtInputAdapter,
    LineEditAdapter,
    TextEditAdapter,
    SpinBoxAdapter,
    ComboBoxAdapter,
    CheckableAdapter,
    QtFieldContainer,
    adapt_input,
    is_input_widget,
)
from .visibility_binder import QtVisibilityBinder

__all__ = [
    "QtTimerScheduler",
    "QtTimerHandle",
    "QtInputAdapter",
    "LineEditAdapter",
    "TextEditAdapter",
    "SpinBoxAdapter",
    "ComboBoxAdapter",
    "CheckableAdapter",
    "QtFieldContainer",
    "adapt_input",
    "is_input_widget",
    "QtVisibilityBinder",
]
