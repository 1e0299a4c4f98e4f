"""Tests for structural normalization, checksums and pruning."""

import copy
from typing import Any

from focus_annotator.core.tree.normalize import (
    collect_ids,
    count_focusables,
    count_nodes,
    frames_checksum,
    iter_nodes,
    normalize_node,
    prune_nodes,
    tree_depth,
)
from tests.unit.samples import login_frame, payload_for


def _frames() -> list[dict[str, Any]]:
    return payload_for(login_frame())["frames"]


def _shift(node: dict[str, Any], dx: float) -> None:
    node["x"] = node.get("x", 0) + dx
    node["id"] = "moved-" + str(node.get("id"))
    for child in node.get("children", []):
        _shift(child, dx)


def test_checksum_ignores_coordinates_and_ids() -> None:
    frames = _frames()
    moved = copy.deepcopy(frames)
    moved[0]["id"] = "other-frame"
    moved[0]["box"] = {"x": 500, "y": 500, "w": 1, "h": 1}
    for child in moved[0]["children"]:
        _shift(child, 37)

    assert frames_checksum(frames) == frames_checksum(moved)


def test_checksum_changes_with_structure() -> None:
    base = frames_checksum(_frames())

    renamed = _frames()
    renamed[0]["children"][1]["name"] = "Username Field"
    refocused = _frames()
    refocused[0]["children"][0]["focusable"] = True
    removed = _frames()
    removed[0]["children"].pop()
    retitled = _frames()
    retitled[0]["name"] = "Sign up"

    checksums = {frames_checksum(f) for f in (renamed, refocused, removed, retitled)}
    assert base not in checksums
    assert len(checksums) == 4


def test_checksum_is_sha256_hex() -> None:
    value = frames_checksum(_frames())
    assert len(value) == 64
    int(value, 16)


def test_normalize_node_keeps_structural_fields_only() -> None:
    node = {
        "id": "1", "name": "A", "type": "TEXT", "x": 3, "role": "", "text": "hi", "children": []
    }
    assert normalize_node(node) == {
        "name": "A",
        "type": "TEXT",
        "visible": True,
        "role": None,
        "focusable": False,
    }


def test_counts_and_ids() -> None:
    children = _frames()[0]["children"]
    assert count_nodes(children) == 5
    assert count_focusables(children) == 4
    assert collect_ids(children) == {"3:2", "3:3", "3:5", "3:7", "3:9"}


def _chain(depth: int, width: int) -> list[dict[str, Any]]:
    if depth == 0:
        return []
    return [
        {"id": f"d{depth}w{i}", "name": "n", "children": _chain(depth - 1, width)}
        for i in range(width)
    ]


def test_prune_keeps_shallow_nodes_first() -> None:
    forest = _chain(3, 2)
    assert count_nodes(forest) == 14

    pruned = prune_nodes(forest, 6)

    assert count_nodes(pruned) == 6
    assert [n["id"] for n in pruned] == ["d3w0", "d3w1"]
    assert all(len(n.get("children", [])) == 2 for n in pruned)
    assert all("children" not in c for n in pruned for c in n["children"])


def test_prune_does_not_modify_input() -> None:
    forest = _chain(2, 3)
    before = copy.deepcopy(forest)
    prune_nodes(forest, 2)
    assert forest == before


def test_prune_with_large_budget_keeps_everything() -> None:
    forest = _chain(2, 2)
    pruned = prune_nodes(forest, 100)
    assert count_nodes(pruned) == count_nodes(forest) == 6
    assert collect_ids(pruned) == collect_ids(forest)


def test_hidden_nodes_are_not_counted_as_focusable() -> None:
    nodes = [
        {
            "id": "a",
            "focusable": True,
            "visible": False,
            "children": [{"id": "b", "focusable": True}],
        },
        {"id": "c", "focusable": True},
    ]
    assert count_focusables(nodes) == 2
    assert [n["id"] for n in iter_nodes(nodes)] == ["a", "b", "c"]


def test_deep_chains_are_walked_without_recursion() -> None:
    node: dict[str, Any] = {"id": "leaf"}
    for level in range(5000):
        node = {"id": str(level), "children": [node]}

    assert tree_depth([node]) == 5001
    assert count_nodes([node]) == 5001
    assert tree_depth([]) == 0
    assert tree_depth(_chain(3, 2)) == 3
