"""
Reactive checkbox tree controller.

Mirrors a rendered ``[data-checkbox-tree]`` container into TreeNodes, lets
the CascadePropagator decide, and writes checked/indeterminate back to the
inputs. The markup is the source of truth: the node view is re-read before
every toggle.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from html_formgen.reactive.dom import Document, DomEvent, Element
from html_formgen.tree.node import CascadeMode, TreeNode
from html_formgen.tree.propagator import CascadePropagator

logger = logging.getLogger(__name__)

CHANGE_EVENT = "checkbox-tree:change"
CHECKBOX_SELECTOR = 'input[type="checkbox"]'


class CheckboxTreeController:
    """
    Binds one rendered checkbox tree.

    Example:
        controller = CheckboxTreeController(document, "permissions", CascadeMode.CASCADE)
        controller.init()
        controller.set_checked_values(["read"])
    """

    def __init__(self, document: Document, tree_id: str, mode: CascadeMode = CascadeMode.CASCADE):
        self.document = document
        self.tree_id = tree_id
        self.mode = CascadeMode(mode)
        self.container: Optional[Element] = None
        self._roots: List[TreeNode] = []
        self._inputs: Dict[int, Element] = {}
        self._paths: Dict[int, List[TreeNode]] = {}

    def init(self) -> bool:
        if self.container is not None:
            return True
        container = self.document.query_selector(f'[data-checkbox-tree="{self.tree_id}"]')
        if container is None:
            logger.warning(f"[CheckboxTreeController] Tree not found: {self.tree_id}")
            return False
        self.container = container

        for checkbox in container.query_selector_all(CHECKBOX_SELECTOR):
            checkbox.add_event_listener("change", self._on_change)

        self._read_tree()
        if self.mode is CascadeMode.CASCADE:
            CascadePropagator.recompute_all(self._roots)
            self._write_tree()
        return True

    # -------------------------------------------------------------- node view

    def _read_tree(self) -> None:
        """Rebuild the TreeNode view from ``ul > li > label > input`` markup."""
        self._inputs.clear()
        self._paths.clear()
        lists = self.container.child_elements("ul") if self.container.name != "ul" else [self.container]
        self._roots = [node for ul in lists for node in self._read_list(ul, [])]

    def _read_list(self, ul: Element, ancestors: List[TreeNode]) -> List[TreeNode]:
        nodes = []
        for li in ul.child_elements("li"):
            checkbox = self._item_checkbox(li)
            if checkbox is None:
                logger.warning(f"[CheckboxTreeController] List item without checkbox in tree '{self.tree_id}'")
                continue
            node = TreeNode(
                value=checkbox.get_value(),
                checked=checkbox.is_checked(),
                disabled=checkbox.is_disabled(),
                indeterminate=checkbox.indeterminate,
            )
            path = ancestors + [node]
            self._inputs[id(node)] = checkbox
            self._paths[id(checkbox)] = path
            for child_list in li.child_elements("ul"):
                node.children.extend(self._read_list(child_list, path))
            nodes.append(node)
        return nodes

    @staticmethod
    def _item_checkbox(li: Element) -> Optional[Element]:
        for label in li.child_elements("label"):
            boxes = label.child_elements(CHECKBOX_SELECTOR)
            if boxes:
                return boxes[0]
        boxes = li.child_elements(CHECKBOX_SELECTOR)
        return boxes[0] if boxes else None

    def _write_tree(self) -> None:
        for root in self._roots:
            for node in root.iter_nodes():
                checkbox = self._inputs[id(node)]
                checkbox.set_checked(node.checked)
                checkbox.indeterminate = node.indeterminate

    # ----------------------------------------------------------------- events

    def _on_change(self, event: DomEvent) -> None:
        self.handle_toggle(event.current_target)

    def handle_toggle(self, checkbox: Element) -> bool:
        """Propagate a checkbox change. Returns False when the toggle was rejected."""
        if checkbox.is_disabled():
            logger.warning(
                f"[CheckboxTreeController] Rejected toggle of disabled node "
                f"{checkbox.get_value()!r} in tree '{self.tree_id}'"
            )
            checkbox.set_checked(not checkbox.is_checked())
            return False

        self._read_tree()
        path = self._paths.get(id(checkbox))
        if path is None:
            logger.warning(f"[CheckboxTreeController] Checkbox {checkbox.describe()} is not part of tree '{self.tree_id}'")
            return False

        CascadePropagator.on_toggle(path[0], path, checkbox.is_checked(), self.mode)
        self._write_tree()
        self._emit_change(changed=checkbox.get_value())
        return True

    def _emit_change(self, changed: Optional[str] = None) -> None:
        self.container.dispatch_event(
            DomEvent(CHANGE_EVENT, detail={"treeId": self.tree_id, "value": changed,
                                           "checkedValues": self.get_checked_values()})
        )

    # -------------------------------------------------------------------- API

    def get_checked_values(self) -> List[str]:
        if self.container is None:
            return []
        return [cb.get_value() for cb in self.container.query_selector_all(CHECKBOX_SELECTOR) if cb.is_checked()]

    def set_checked_values(self, values: Iterable[str]) -> None:
        """Check exactly ``values`` (disabled boxes keep their state), then recompute parents in cascade mode."""
        if self.container is None:
            logger.warning(f"[CheckboxTreeController] set_checked_values before init on '{self.tree_id}'")
            return
        wanted = {str(v) for v in values}
        for checkbox in self.container.query_selector_all(CHECKBOX_SELECTOR):
            if not checkbox.is_disabled():
                checkbox.set_checked(checkbox.get_value() in wanted)
                checkbox.indeterminate = False

        if self.mode is CascadeMode.CASCADE:
            self._read_tree()
            CascadePropagator.recompute_all(self._roots)
            self._write_tree()
        self._emit_change()

    def state(self) -> Dict[str, Tuple[bool, bool]]:
        """(checked, indeterminate) per node value, for inspection."""
        if self.container is None:
            return {}
        return {
            cb.get_value(): (cb.is_checked(), cb.indeterminate)
            for cb in self.container.query_selector_all(CHECKBOX_SELECTOR)
        }
