"""
Qt binding for built Forms.

QtVisibilityBinder connects Qt input widgets to a Form's controllers and
shows or hides the widgets wrapping its dependents. Visibility comes from
the Form's server-side evaluator, so a Qt front end and a rendered HTML
page agree on every value snapshot. Transitions run through the same
TransitionRunner as the reactive element tree, with QTimer waits.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from PyQt6.QtWidgets import QAbstractButton, QComboBox, QLineEdit, QPlainTextEdit, QTextEdit, QWidget

from html_formgen.animation.animation_config import AnimationConfig
from html_formgen.animation.animation_policy import AnimationPolicy
from html_formgen.core.scheduler import Scheduler
from html_formgen.dependencies.evaluator import EvaluationResult
from html_formgen.forms.form import Form
from html_formgen.qt.adapters import QtFieldContainer, QtInputAdapter, adapt_input
from html_formgen.qt.scheduler import QtTimerScheduler
from html_formgen.reactive.transition_runner import TransitionRunner
from html_formgen.services.flag_context_manager import ControllerFlag, FlagContextManager

logger = logging.getLogger(__name__)


class QtVisibilityBinder:
    """
    Keeps Qt field containers in sync with a Form's dependency state.

    Args:
        form: Built form
        containers: Field name -> widget wrapping that field
        scheduler: Transition timer source (QtTimerScheduler when omitted)

    Example:
        binder = QtVisibilityBinder(form, {"company_size": size_row})
        binder.bind_input("account_type", account_combo)
        binder.init()
    """

    def __init__(self, form: Form, containers: Mapping[str, QWidget],
                 scheduler: Optional[Scheduler] = None):
        self.form = form
        self.containers: Dict[str, QtFieldContainer] = {}
        for name, widget in containers.items():
            form.field(name)
            self.containers[name] = QtFieldContainer(widget)

        self.runner = TransitionRunner(
            AnimationPolicy(form.animation),
            scheduler if scheduler is not None else QtTimerScheduler(),
        )
        self._instant_runner = TransitionRunner(AnimationPolicy(AnimationConfig(enabled=False)))

        self._inputs: Dict[str, List[Tuple[QtInputAdapter, Optional[str]]]] = {}
        self._state: Dict[str, bool] = {}
        self._deferred: List[Tuple[str, Any]] = []
        self._evaluating = False
        self._initializing = False

    # ----------------------------------------------------------------- inputs

    def bind_input(self, name: str, widget: QWidget, option_value: Optional[str] = None) -> QtInputAdapter:
        """
        Feed ``widget`` changes into the form's field ``name``.

        Checkable widgets bound with ``option_value`` set the field to that
        value while checked (radio buttons sharing one field).
        """
        self.form.field(name)
        adapter = adapt_input(widget)
        self._inputs.setdefault(name, []).append((adapter, option_value))
        self._connect(widget, lambda *_: self._on_input_changed(name, adapter, option_value))
        logger.debug(f"[QtVisibilityBinder] Bound {adapter!r} to '{name}'")
        return adapter

    @staticmethod
    def _connect(widget: QWidget, slot) -> None:
        if isinstance(widget, QLineEdit):
            widget.textChanged.connect(slot)
        elif isinstance(widget, (QTextEdit, QPlainTextEdit)):
            widget.textChanged.connect(slot)
        elif isinstance(widget, QComboBox):
            widget.currentIndexChanged.connect(slot)
        elif isinstance(widget, QAbstractButton):
            widget.toggled.connect(slot)
        else:
            widget.valueChanged.connect(slot)

    def _value_from(self, name: str, adapter: QtInputAdapter, option_value: Optional[str]) -> Tuple[bool, Any]:
        """(changed, value) for one widget signal."""
        if not adapter.is_checkable or option_value is None:
            return True, adapter.get_value()
        if adapter.is_checked():
            return True, option_value
        # Unchecking one radio of a set only matters if it held the value
        if self.form.value_of(name) == option_value:
            return True, None
        return False, None

    def _on_input_changed(self, name: str, adapter: QtInputAdapter, option_value: Optional[str]) -> None:
        changed, value = self._value_from(name, adapter, option_value)
        if not changed:
            return
        if FlagContextManager.is_flag_set(self, ControllerFlag.EVALUATING):
            # Hide finalize clearing inputs mid-apply
            self._deferred.append((name, value))
            return
        self.form.trigger_field_value_change(name, value)
        self.apply()

    # ------------------------------------------------------------- visibility

    def init(self) -> EvaluationResult:
        """Read every bound widget into the form and apply the state without transitions."""
        with FlagContextManager.initializing(self):
            for name, bindings in self._inputs.items():
                for adapter, option_value in bindings:
                    changed, value = self._value_from(name, adapter, option_value)
                    if changed and (option_value is None or value is not None):
                        self.form.trigger_field_value_change(name, value)
            result = self.apply()
        logger.debug(f"[QtVisibilityBinder] Initialized '{self.form.form_id}': {self.visibility()}")
        return result

    def apply(self, result: Optional[EvaluationResult] = None) -> EvaluationResult:
        """Show or hide containers whose visibility differs from ``result`` (evaluated when omitted)."""
        if result is None:
            result = self.form.evaluate()

        with FlagContextManager.manage_flags(self, _evaluating=True):
            for name, container in self.containers.items():
                visible = result.is_visible(name)
                if self._state.get(name) == visible:
                    continue
                runner = self.runner if name in self._state and not self._initializing else self._instant_runner
                self._state[name] = visible
                runner.run(container, visible)
                logger.debug(f"[QtVisibilityBinder] {'Show' if visible else 'Hide'} '{name}'")

        deferred, self._deferred = self._deferred, []
        for name, value in deferred:
            self.form.trigger_field_value_change(name, value)
        if deferred:
            return self.apply()
        return result

    def visibility(self) -> Dict[str, bool]:
        return dict(self._state)

    def is_displayed(self, name: str) -> bool:
        return self.containers[name].is_displayed
