"""
html-formgen: declarative HTML forms with conditional fields and checkbox trees.

Fields declare which controller values make them visible. The same
dependency graph is evaluated once on the server while rendering and
continuously on the client by a generated controller script, so the first
paint already matches what the client would compute.

Architecture:
- Tier 1 (Core): Exceptions, observers, render guard, schedulers
- Tier 2 (Protocols): Element ABCs and application configuration
- Tier 3 (Engine): Dependency graph and evaluator, checkbox tree propagation,
  animation policy
- Tier 4 (Reactive): Element tree, transition runner, reactive controllers
- Tier 5 (Forms): FormBuilder, Form, field types, renderer and scripts
- Optional (Qt): PyQt6 scheduler, widget adapters and visibility binder

Key Features:
- Topologically ordered, cycle-checked dependency evaluation
- Transitive hide and empty-select group reset
- Tri-state checkbox trees with cascade and independent modes
- Cancellable fade/slide transitions that never disable a re-shown field
- Repeaters whose cloned rows join the dependency controller
- Per-render-pass script deduplication
"""

__version__ = "0.1.0"

from html_formgen.core import (
    FormGenError,
    FormConfigurationError,
    DependencyCycleError,
    TreeValidationError,
    DuplicateTreeValueError,
    TreeCycleError,
    DisabledNodeError,
    RenderGuard,
    RenderContext,
    ImmediateScheduler,
    ManualScheduler,
)
from html_formgen.core.log_utils import configure_logging
from html_formgen.animation import AnimationConfig, AnimationType, AnimationPolicy
from html_formgen.protocols import FormGenConfig, set_form_config, get_form_config, reset_form_config
from html_formgen.services import FieldEvent, FieldEventType, RequiredToggler
from html_formgen.dependencies import (
    Field,
    FieldKind,
    DependencyDeclaration,
    DependencyGraph,
    VisibilityEvaluator,
    EvaluationResult,
    evaluate,
)
from html_formgen.tree import TreeNode, CascadeMode, CheckboxTree, CascadePropagator, build_tree
from html_formgen.reactive import (
    Document,
    Element,
    parse_html,
    ReactiveController,
    CheckboxTreeController,
    RepeaterController,
)
from html_formgen.scripts import DependencyScriptGenerator, CheckboxTreeScriptGenerator, RepeaterScriptGenerator
from html_formgen.forms import Form, FormBuilder, FormRenderer, RenderedForm, render_form

__all__ = [
    "__version__",
    "FormGenError",
    "FormConfigurationError",
    "DependencyCycleError",
    "TreeValidationError",
    "DuplicateTreeValueError",
    "TreeCycleError",
    "DisabledNodeError",
    "RenderGuard",
    "RenderContext",
    "ImmediateScheduler",
    "ManualScheduler",
    "configure_logging",
    "AnimationConfig",
    "AnimationType",
    "AnimationPolicy",
    "FormGenConfig",
    "set_form_config",
    "get_form_config",
    "reset_form_config",
    "FieldEvent",
    "FieldEventType",
    "RequiredToggler",
    "Field",
    "FieldKind",
    "DependencyDeclaration",
    "DependencyGraph",
    "VisibilityEvaluator",
    "EvaluationResult",
    "evaluate",
    "TreeNode",
    "CascadeMode",
    "CheckboxTree",
    "CascadePropagator",
    "build_tree",
    "Document",
    "Element",
    "parse_html",
    "ReactiveController",
    "CheckboxTreeController",
    "RepeaterController",
    "DependencyScriptGenerator",
    "CheckboxTreeScriptGenerator",
    "RepeaterScriptGenerator",
    "Form",
    "FormBuilder",
    "FormRenderer",
    "RenderedForm",
    "render_form",
]
