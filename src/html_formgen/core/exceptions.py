"""Form generation exceptions."""


class FormGenError(Exception):
    """Base class for all html-formgen errors."""


class FormConfigurationError(FormGenError):
    """Raised when a form is assembled inconsistently (duplicate names, conflicting groups)."""


class DependencyCycleError(FormGenError):
    """Raised when dependency declarations form a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(
            f"Cyclic field dependency detected: {' -> '.join(self.cycle)}. "
            f"Dependencies must form a DAG from controller to dependent."
        )


class TreeValidationError(FormGenError):
    """Raised when a checkbox tree structure is invalid."""


class DuplicateTreeValueError(TreeValidationError):
    """Raised when two nodes of one checkbox tree share a value."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Duplicate checkbox tree value: {value!r}")


class TreeCycleError(TreeValidationError):
    """Raised when a checkbox tree node appears among its own descendants."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Checkbox tree node {value!r} is its own ancestor")


class DisabledNodeError(FormGenError):
    """Raised when a disabled checkbox tree node is toggled through the input layer."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Checkbox tree node {value!r} is disabled and cannot be toggled")
