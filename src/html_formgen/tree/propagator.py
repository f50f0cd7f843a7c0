"""
Tri-state propagation for checkbox trees.

Cascade mode:
1. A toggle sets every descendant to the same checked state. Disabled
   descendants, and everything below them, keep their state.
2. Each ancestor, from the toggled node's parent up to the root, is
   recomputed from its direct, non-disabled children:
   none checked -> unchecked, all checked -> checked, otherwise indeterminate.
   Disabled ancestors are skipped.

Independent mode changes only the toggled node.

Disabled nodes are rejected before they get here (CheckboxTree.toggle);
the propagator itself never checks the toggled node's disabled flag.
"""

import logging
from typing import Iterable, Sequence

from html_formgen.tree.node import CascadeMode, TreeNode

logger = logging.getLogger(__name__)


class CascadePropagator:
    """Stateless tri-state engine. All methods mutate nodes in place."""

    @staticmethod
    def on_toggle(tree_root: TreeNode, path: Sequence[TreeNode], new_checked: bool,
                  mode: CascadeMode) -> None:
        """
        Apply a toggle of ``path[-1]``.

        Args:
            tree_root: Root of the tree the node belongs to
            path: Nodes from ``tree_root`` down to the toggled node (inclusive)
            new_checked: The toggled node's new state
            mode: Cascade or independent
        """
        if not path:
            raise ValueError("on_toggle needs a non-empty path")
        if path[0] is not tree_root:
            raise ValueError(f"Path starts at {path[0].value!r}, not at tree root {tree_root.value!r}")

        node = path[-1]
        node.checked = new_checked

        if mode is CascadeMode.INDEPENDENT:
            logger.debug(f"[CascadePropagator] {node.value} -> {new_checked} (independent)")
            return

        node.indeterminate = False
        CascadePropagator._cascade_down(node, new_checked)
        for ancestor in reversed(path[:-1]):
            if ancestor.disabled:
                continue
            CascadePropagator.recompute_tri_state(ancestor)
        logger.debug(f"[CascadePropagator] {node.value} -> {new_checked} (cascade, depth {len(path) - 1})")

    @staticmethod
    def _cascade_down(node: TreeNode, checked: bool) -> None:
        for child in node.children:
            if child.disabled:
                continue
            child.checked = checked
            child.indeterminate = False
            CascadePropagator._cascade_down(child, checked)

    @staticmethod
    def recompute_tri_state(node: TreeNode) -> None:
        """Recompute one node from its direct children. Leaves are left alone."""
        if not node.children:
            return
        eligible = [child for child in node.children if not child.disabled]
        if not eligible:
            return

        checked_count = sum(1 for child in eligible if child.checked)
        if checked_count == 0:
            node.checked, node.indeterminate = False, False
        elif checked_count == len(eligible):
            node.checked, node.indeterminate = True, False
        else:
            node.checked, node.indeterminate = False, True

    @staticmethod
    def recompute_all(roots: Iterable[TreeNode], mode: CascadeMode = CascadeMode.CASCADE) -> None:
        """Recompute every non-disabled parent bottom-up. No-op in independent mode."""
        if mode is CascadeMode.INDEPENDENT:
            return
        for root in roots:
            CascadePropagator._recompute_subtree(root)

    @staticmethod
    def _recompute_subtree(node: TreeNode) -> None:
        for child in node.children:
            CascadePropagator._recompute_subtree(child)
        if not node.disabled:
            CascadePropagator.recompute_tri_state(node)
