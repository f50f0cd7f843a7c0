"""Tests for checkbox tree nodes and tri-state propagation."""

import logging
import random

import pytest

from conftest import PERMISSIONS
from html_formgen.core import DisabledNodeError, DuplicateTreeValueError, TreeCycleError, TreeValidationError
from html_formgen.tree import CascadeMode, CascadePropagator, CheckboxTree, TreeNode, build_tree, tree_from_value


def assert_tri_state(tree: CheckboxTree) -> None:
    """Every enabled parent agrees with its direct, enabled children."""
    for node in tree.iter_nodes():
        eligible = [c for c in node.children if not c.disabled]
        if node.disabled or not eligible:
            continue
        checked = sum(1 for c in eligible if c.checked)
        if checked == 0:
            assert (node.checked, node.indeterminate) == (False, False), node
        elif checked == len(eligible):
            assert (node.checked, node.indeterminate) == (True, False), node
        else:
            assert (node.checked, node.indeterminate) == (False, True), node


def test_parent_child_scenario():
    tree = tree_from_value("perms", PERMISSIONS)
    parent = tree.find("parent")

    tree.toggle("child1", True)
    assert (parent.checked, parent.indeterminate) == (False, True)

    tree.toggle("child2", True)
    assert (parent.checked, parent.indeterminate) == (True, False)

    tree.toggle("parent", False)
    assert tree.checked_values() == []
    assert parent.indeterminate is False


def test_cascade_down():
    tree = tree_from_value("perms", PERMISSIONS)
    tree.toggle("parent", True)
    assert tree.checked_values() == ["parent", "child1", "child2"]


def test_disabled_child_keeps_state():
    data = [{"value": "parent", "children": [
        {"value": "child1"},
        {"value": "child2", "disabled": True},
    ]}]
    tree = tree_from_value("perms", data)

    tree.toggle("parent", True)
    assert tree.find("child1").checked
    assert not tree.find("child2").checked
    # child2 is excluded from the count, so parent stays fully checked
    assert tree.find("parent").checked and not tree.find("parent").indeterminate

    tree.toggle("child1", False)
    assert not tree.find("parent").checked


def test_disabled_subtree_untouched():
    data = [{"value": "root", "children": [
        {"value": "locked", "disabled": True, "checked": True, "children": [
            {"value": "inner", "checked": True},
        ]},
        {"value": "open"},
    ]}]
    tree = tree_from_value("t", data)
    tree.toggle("root", False)
    assert tree.find("locked").checked
    assert tree.find("inner").checked
    assert not tree.find("open").checked


def test_toggle_disabled_node_rejected():
    tree = tree_from_value("t", [{"value": "a", "disabled": True}])
    with pytest.raises(DisabledNodeError):
        tree.toggle("a", True)
    assert not tree.find("a").checked


def test_independent_mode_isolation():
    tree = tree_from_value("perms", PERMISSIONS, CascadeMode.INDEPENDENT)
    tree.toggle("parent", True)
    assert tree.checked_values() == ["parent"]

    tree.toggle("child1", True)
    parent = tree.find("parent")
    assert parent.checked and not parent.indeterminate


def test_initial_indeterminate_computed():
    data = [{"value": "parent", "children": [{"value": "child1", "checked": True}, {"value": "child2"}]}]
    tree = tree_from_value("perms", data)
    assert tree.find("parent").indeterminate


def test_set_checked_values_recomputes_parents():
    tree = tree_from_value("perms", PERMISSIONS)
    tree.set_checked_values(["child1", "child2"])
    assert tree.find("parent").checked

    tree.set_checked_values(["parent", "child1"])
    assert tree.find("parent").indeterminate
    assert tree.checked_values() == ["child1"]


def test_set_checked_values_unknown_warns(caplog):
    tree = tree_from_value("perms", PERMISSIONS)
    with caplog.at_level(logging.WARNING):
        tree.set_checked_values(["nope"])
    assert "ignoring unknown values ['nope']" in caplog.text


def test_duplicate_values_rejected():
    with pytest.raises(DuplicateTreeValueError):
        tree_from_value("t", [{"value": "a"}, {"value": "b", "children": [{"value": "a"}]}])


def test_self_containing_node_rejected():
    node = TreeNode("loop")
    node.children.append(node)
    with pytest.raises(TreeCycleError):
        CheckboxTree("t", [node])


def test_item_without_value_rejected():
    with pytest.raises(TreeValidationError):
        build_tree([{"label": "No value"}])


def test_path_validation():
    tree = tree_from_value("perms", PERMISSIONS)
    child = tree.find("child1")
    with pytest.raises(ValueError):
        CascadePropagator.on_toggle(child, tree.path_to("child1"), True, CascadeMode.CASCADE)
    with pytest.raises(KeyError):
        tree.path_to("missing")


def test_tri_state_invariant_under_random_toggles():
    data = [
        {"value": f"r{i}", "children": [
            {"value": f"r{i}c{j}", "disabled": j == 2, "children": [
                {"value": f"r{i}c{j}g{k}"} for k in range(3)
            ]} for j in range(3)
        ]} for i in range(2)
    ]
    tree = tree_from_value("big", data)
    values = [n.value for n in tree.iter_nodes() if not n.disabled]
    rng = random.Random(7)

    for _ in range(200):
        tree.toggle(rng.choice(values), rng.random() < 0.5)
        assert_tri_state(tree)


def test_to_dict_round_trip():
    tree = tree_from_value("perms", PERMISSIONS, checked=["child1"])
    data = tree.to_dict()
    assert data["id"] == "perms"
    assert data["mode"] == "cascade"
    rebuilt = tree_from_value("perms", data["nodes"])
    assert rebuilt.checked_values() == ["child1"]
    assert rebuilt.find("parent").indeterminate
