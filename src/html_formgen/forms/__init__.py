"""
Form layer.

Fluent FormBuilder, the built Form, the field type registry and the HTML
renderer that attaches the dependency, checkbox tree and repeater scripts.
"""

from .field_types import FIELD_TYPES, FieldType, FieldTypeMeta, FieldView, get_field_type
from .form import Form
from .builder import FormBuilder, FieldBuilder, FieldGroupBuilder, RepeaterBuilder
from .renderer import FormRenderer, RenderedForm, render_form

__all__ = [
    "FIELD_TYPES",
    "FieldType",
    "FieldTypeMeta",
    "FieldView",
    "get_field_type",
    "Form",
    "FormBuilder",
    "FieldBuilder",
    "FieldGroupBuilder",
    "RepeaterBuilder",
    "FormRenderer",
    "RenderedForm",
    "render_form",
]
