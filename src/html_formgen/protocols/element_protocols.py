"""
Element ABC contracts for the reactive layer.

The reactive controller drives show/hide, enable/disable and value clearing
through these contracts, so the same sequencing works for the in-memory
element tree (html_formgen.reactive.dom) and for Qt widgets
(html_formgen.qt.adapters).

Design Philosophy:
- Explicit inheritance over duck typing
- Fail-loud over fail-silent
- Multiple inheritance for composable capabilities
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator


class Styleable(ABC):
    """ABC for elements whose inline style the transition runner mutates."""

    @abstractmethod
    def set_style(self, name: str, value: str) -> None:
        """
        Set an inline style property. An empty value removes the property.

        Args:
            name: CSS property name (e.g., "display", "max-height")
            value: CSS value, "" to clear
        """
        pass

    @abstractmethod
    def get_style(self, name: str) -> str:
        """Return the inline style value, "" when unset."""
        pass

    @property
    @abstractmethod
    def content_height(self) -> int:
        """Natural height of the element's content in pixels."""
        pass


class InputControl(ABC):
    """
    ABC for form inputs that hide/show side effects enable, disable and clear.

    Checkable controls (checkbox, radio) are cleared by unchecking them; all
    other controls by emptying their value.
    """

    @property
    @abstractmethod
    def is_checkable(self) -> bool:
        pass

    @abstractmethod
    def get_value(self) -> Any:
        pass

    @abstractmethod
    def set_value(self, value: Any) -> None:
        pass

    @abstractmethod
    def is_checked(self) -> bool:
        pass

    @abstractmethod
    def set_checked(self, checked: bool) -> None:
        pass

    @abstractmethod
    def set_disabled(self, disabled: bool) -> None:
        pass

    @abstractmethod
    def is_disabled(self) -> bool:
        pass


def clear_input(control: InputControl) -> None:
    """Clear a control the way a hide finalize does."""
    if control.is_checkable:
        control.set_checked(False)
    else:
        control.set_value("")


class InputContainer(ABC):
    """ABC for elements that own form inputs (wrappers, groups, widget containers)."""

    @abstractmethod
    def iter_inputs(self) -> Iterator[InputControl]:
        """Yield every input inside this element, in document order."""
        pass


class EventTarget(ABC):
    """ABC for elements that accept listeners and dispatch events."""

    @abstractmethod
    def add_event_listener(self, event_type: str, listener: Callable[[Any], None]) -> None:
        pass

    @abstractmethod
    def remove_event_listener(self, event_type: str, listener: Callable[[Any], None]) -> None:
        pass

    @abstractmethod
    def dispatch_event(self, event: Any) -> Any:
        pass
