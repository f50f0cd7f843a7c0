"""
Hierarchical checkbox trees: the node model and the tri-state propagator.
"""

from .node import TreeNode, CascadeMode, CheckboxTree, build_tree, tree_from_value
from .propagator import CascadePropagator

__all__ = [
    "TreeNode",
    "CascadeMode",
    "CheckboxTree",
    "build_tree",
    "tree_from_value",
    "CascadePropagator",
]
