"""
Field dependency engine.

Declarations, the validated dependency graph and the server-side
visibility evaluator.
"""

from .declaration import (
    ALL_SENTINEL,
    Field,
    FieldKind,
    DependencyDeclaration,
    active_identifiers,
    infer_kind,
    is_empty_select,
)
from .graph import DependencyGraph
from .evaluator import VisibilityEvaluator, EvaluationResult, evaluate

__all__ = [
    "ALL_SENTINEL",
    "Field",
    "FieldKind",
    "DependencyDeclaration",
    "active_identifiers",
    "infer_kind",
    "is_empty_select",
    "DependencyGraph",
    "VisibilityEvaluator",
    "EvaluationResult",
    "evaluate",
]
