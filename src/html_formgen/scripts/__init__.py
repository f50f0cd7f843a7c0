"""
Generated client-side controller scripts, guarded per render pass.
"""

from .dependency_script import (
    DependencyScriptGenerator,
    dependency_namespace,
    generate_dependency_script,
    js_literal,
    wrap_script,
)
from .checkbox_tree_script import (
    CheckboxTreeScriptGenerator,
    generate_checkbox_tree_script,
    tree_namespace,
)
from .repeater_script import (
    RepeaterScriptGenerator,
    generate_repeater_script,
    repeater_namespace,
)

__all__ = [
    "DependencyScriptGenerator",
    "dependency_namespace",
    "generate_dependency_script",
    "js_literal",
    "wrap_script",
    "CheckboxTreeScriptGenerator",
    "generate_checkbox_tree_script",
    "tree_namespace",
    "RepeaterScriptGenerator",
    "generate_repeater_script",
    "repeater_namespace",
]
