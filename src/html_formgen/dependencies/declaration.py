"""
Field and dependency declaration model.

A DependencyDeclaration is one edge of the dependency graph: the dependent
field (or field group) is shown while the controller field's active
identifier is among the declaration's trigger identifiers.

Identifiers are ``"<controller>-<value>"`` strings, the same strings the
client controller computes from the live inputs. The sentinel ``"all"``
matches any active controller.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from html_formgen.core.exceptions import FormConfigurationError

logger = logging.getLogger(__name__)

ALL_SENTINEL = "all"


class FieldKind(Enum):
    """Input kinds the dependency engine distinguishes."""
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    HIDDEN = "hidden"
    GROUP = "group"
    REPEATER = "repeater"
    CHECKBOX_TREE = "checkbox_tree"

    @property
    def is_checkable(self) -> bool:
        return self in (FieldKind.CHECKBOX, FieldKind.RADIO)

    @property
    def is_container(self) -> bool:
        return self in (FieldKind.GROUP, FieldKind.REPEATER)


@dataclass(frozen=True)
class Field:
    """
    One form field as the dependency engine sees it.

    Attributes:
        name: Unique field name within the form
        kind: Input kind
        value: Default value (used when the snapshot has none)
        is_controller: Whether changes of this field drive other fields
        controller_group: Dependency group this controller toggles
        parent: Name of the enclosing field group or repeater, None at top level
        option_value: Value attribute of a single checkbox/radio
        options: Choices for select/radio/checkbox lists as (value, label) pairs
        label: Human-readable label
        required: Whether the input carries the required attribute
    """
    name: str
    kind: FieldKind = FieldKind.TEXT
    value: Any = None
    is_controller: bool = False
    controller_group: Optional[str] = None
    parent: Optional[str] = None
    option_value: Optional[str] = None
    options: Tuple[Tuple[str, str], ...] = ()
    label: Optional[str] = None
    required: bool = False

    @property
    def group(self) -> str:
        """Dependency group of a controller, its own name by default."""
        return self.controller_group or self.name


@dataclass(frozen=True)
class DependencyDeclaration:
    """
    Immutable dependency edge.

    ``trigger_values`` holds raw controller values; ``trigger_identifiers``
    holds the wire form (``"<controller>-<value>"``, ``"all"`` verbatim).
    """
    dependent_field: str
    controller_field: str
    trigger_values: FrozenSet[str] = field(default_factory=frozenset)
    group: Optional[str] = None

    def __post_init__(self):
        if not self.dependent_field or not self.controller_field:
            raise FormConfigurationError("Dependency declarations need both a dependent and a controller field")
        if not isinstance(self.trigger_values, frozenset):
            object.__setattr__(self, "trigger_values", frozenset(str(v) for v in self.trigger_values))
        if not self.trigger_values:
            raise FormConfigurationError(
                f"Field '{self.dependent_field}' depends on '{self.controller_field}' without trigger values"
            )
        if self.group is None:
            object.__setattr__(self, "group", self.controller_field)

    @classmethod
    def create(cls, dependent: str, controller: str, values: Any,
               group: Optional[str] = None) -> "DependencyDeclaration":
        """Build a declaration from a single value or an iterable of values."""
        if isinstance(values, (str, int, bool)):
            values = [values]
        return cls(dependent, controller, frozenset(str(v) for v in values), group)

    @property
    def trigger_identifiers(self) -> FrozenSet[str]:
        return frozenset(
            v if v == ALL_SENTINEL else f"{self.controller_field}-{v}"
            for v in self.trigger_values
        )

    @property
    def matches_all(self) -> bool:
        return ALL_SENTINEL in self.trigger_values

    def matches(self, identifiers: Iterable[str]) -> bool:
        """True when any active identifier triggers this declaration."""
        identifiers = frozenset(identifiers)
        if not identifiers:
            return False
        return self.matches_all or bool(identifiers & self.trigger_identifiers)


def infer_kind(value: Any) -> FieldKind:
    """Guess a controller kind from a snapshot value when no Field is known."""
    if isinstance(value, bool):
        return FieldKind.CHECKBOX
    if isinstance(value, (list, tuple, set, frozenset)):
        return FieldKind.CHECKBOX
    return FieldKind.SELECT


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value is False or (
        isinstance(value, (list, tuple, set, frozenset)) and len(value) == 0
    )


def active_identifiers(controller: str, kind: FieldKind, value: Any,
                       option_value: Optional[str] = None) -> FrozenSet[str]:
    """
    Identifiers a controller currently contributes, empty when inactive.

    - select and text-like: ``{controller-value}`` for a non-empty value
    - checkbox/radio: ``{controller-value}`` when checked with a value, else ``{controller}``;
      a list value (checkbox group, multi-select) yields one identifier per item
    - hidden: always active, ``controller-value`` or plain ``controller``
    """
    if kind is FieldKind.HIDDEN:
        if _is_empty(value) or value is True:
            return frozenset({controller})
        return frozenset({f"{controller}-{value}"})

    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(f"{controller}-{item}" for item in value if not _is_empty(item))

    if kind.is_checkable:
        if _is_empty(value):
            return frozenset()
        if value is True:
            if option_value:
                return frozenset({f"{controller}-{option_value}"})
            return frozenset({controller})
        return frozenset({f"{controller}-{value}"})

    if _is_empty(value):
        return frozenset()
    if value is True:
        return frozenset({controller})
    return frozenset({f"{controller}-{value}"})


def is_empty_select(kind: FieldKind, value: Any) -> bool:
    """A select with no selection resets every dependent of its group."""
    return kind is FieldKind.SELECT and not isinstance(value, (list, tuple, set, frozenset)) and _is_empty(value)
