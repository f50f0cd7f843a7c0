"""
Checkbox tree model.

TreeNode is a plain recursive node; CheckboxTree owns a forest of them,
validates it once at construction (unique values, no node reachable from
itself) and is the input layer for toggles: it rejects toggles of disabled
nodes and hands everything else to the CascadePropagator.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set

from html_formgen.core.exceptions import (
    DisabledNodeError,
    DuplicateTreeValueError,
    TreeCycleError,
    TreeValidationError,
)

logger = logging.getLogger(__name__)


class CascadeMode(Enum):
    """How a toggle spreads through a tree. Fixed per tree."""
    CASCADE = "cascade"
    INDEPENDENT = "independent"


@dataclass(eq=False)
class TreeNode:
    """
    One checkbox of a tree.

    ``indeterminate`` is derived: the propagator recomputes it from the
    direct children and nothing else should set it.
    """
    value: str
    label: str = ""
    checked: bool = False
    disabled: bool = False
    children: List["TreeNode"] = field(default_factory=list)
    indeterminate: bool = False

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def iter_nodes(self) -> Iterator["TreeNode"]:
        """Depth-first, pre-order walk of this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"value": self.value, "label": self.label, "checked": self.checked}
        if self.disabled:
            data["disabled"] = True
        if self.indeterminate:
            data["indeterminate"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def __repr__(self) -> str:
        state = "indeterminate" if self.indeterminate else ("checked" if self.checked else "unchecked")
        return f"TreeNode({self.value!r}, {state}, children={len(self.children)})"


def build_tree(data: Iterable[Mapping[str, Any]]) -> List[TreeNode]:
    """
    Build nodes from nested mappings.

    Each mapping takes ``value`` (required), ``label``, ``checked``,
    ``disabled`` and ``children``. The label defaults to the value.
    """
    nodes = []
    for item in data:
        if "value" not in item:
            raise TreeValidationError(f"Checkbox tree item without a value: {dict(item)!r}")
        value = str(item["value"])
        nodes.append(TreeNode(
            value=value,
            label=str(item.get("label", value)),
            checked=bool(item.get("checked", False)),
            disabled=bool(item.get("disabled", False)),
            children=build_tree(item.get("children") or ()),
        ))
    return nodes


class CheckboxTree:
    """
    A validated checkbox forest with a fixed cascade mode.

    Example:
        tree = CheckboxTree("perms", build_tree(data), CascadeMode.CASCADE)
        tree.toggle("child1", True)
        tree.find("parent").indeterminate  # True
    """

    def __init__(self, tree_id: str, roots: Sequence[TreeNode],
                 mode: CascadeMode = CascadeMode.CASCADE):
        if not tree_id:
            raise TreeValidationError("Checkbox tree needs an id")
        self.tree_id = tree_id
        self.roots: List[TreeNode] = list(roots)
        self.mode = CascadeMode(mode)
        self._paths: Dict[str, List[TreeNode]] = {}
        self._validate()

        if self.mode is CascadeMode.CASCADE:
            from html_formgen.tree.propagator import CascadePropagator
            CascadePropagator.recompute_all(self.roots)

    def _validate(self) -> None:
        for root in self.roots:
            self._index(root, [], set())
        logger.debug(f"[CheckboxTree] '{self.tree_id}' indexed {len(self._paths)} nodes ({self.mode.value})")

    def _index(self, node: TreeNode, ancestors: List[TreeNode], on_path: Set[int]) -> None:
        if id(node) in on_path:
            raise TreeCycleError(node.value)
        if node.value in self._paths:
            raise DuplicateTreeValueError(node.value)
        path = ancestors + [node]
        self._paths[node.value] = path
        on_path = on_path | {id(node)}
        for child in node.children:
            self._index(child, path, on_path)

    def iter_nodes(self) -> Iterator[TreeNode]:
        for root in self.roots:
            yield from root.iter_nodes()

    def find(self, value: str) -> TreeNode:
        return self.path_to(value)[-1]

    def path_to(self, value: str) -> List[TreeNode]:
        """Nodes from the root down to the node with ``value`` (inclusive)."""
        try:
            return list(self._paths[value])
        except KeyError:
            raise KeyError(f"Checkbox tree '{self.tree_id}' has no node {value!r}") from None

    def __contains__(self, value: str) -> bool:
        return value in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def toggle(self, value: str, checked: bool) -> TreeNode:
        """
        Set a node's checked state and propagate per the tree's mode.

        Raises:
            DisabledNodeError: The node is disabled
        """
        from html_formgen.tree.propagator import CascadePropagator

        path = self.path_to(value)
        node = path[-1]
        if node.disabled:
            raise DisabledNodeError(value)
        CascadePropagator.on_toggle(path[0], path, checked, self.mode)
        return node

    def checked_values(self) -> List[str]:
        """Values of checked nodes in document order."""
        return [node.value for node in self.iter_nodes() if node.checked]

    def set_checked_values(self, values: Iterable[str]) -> None:
        """
        Check exactly the given values. Disabled nodes keep their state.

        In cascade mode parents are then recomputed from their children, so a
        parent listed without all of its children ends up indeterminate.
        """
        from html_formgen.tree.propagator import CascadePropagator

        wanted = {str(v) for v in values}
        unknown = wanted - set(self._paths)
        if unknown:
            logger.warning(f"[CheckboxTree] '{self.tree_id}' ignoring unknown values {sorted(unknown)}")
        for node in self.iter_nodes():
            if not node.disabled:
                node.checked = node.value in wanted
                node.indeterminate = False
        if self.mode is CascadeMode.CASCADE:
            CascadePropagator.recompute_all(self.roots)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tree_id,
            "mode": self.mode.value,
            "nodes": [root.to_dict() for root in self.roots],
        }

    def __repr__(self) -> str:
        return f"CheckboxTree({self.tree_id!r}, mode={self.mode.value}, nodes={len(self)})"


def tree_from_value(tree_id: str, data: Any, mode: Any = CascadeMode.CASCADE,
                    checked: Optional[Iterable[str]] = None) -> CheckboxTree:
    """Build a CheckboxTree from nested mappings, optionally applying checked values."""
    tree = CheckboxTree(tree_id, build_tree(data), CascadeMode(mode))
    if checked is not None:
        tree.set_checked_values(checked)
    return tree
