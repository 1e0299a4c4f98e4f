"""Structural normalization, checksums and budgets over wire-format trees."""

import hashlib
import json
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Any

# Fields that define structure. Coordinates and host ids are volatile and excluded.
STRUCTURAL_FIELDS: tuple[str, ...] = ("name", "type", "visible", "role", "focusable")


def _children(node: dict[str, Any]) -> list[dict[str, Any]]:
    raw = node.get("children")
    if not isinstance(raw, list):
        return []
    return [c for c in raw if isinstance(c, dict)]


def iter_nodes(nodes: Iterable[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    """Yield every node of a forest in pre-order, without recursion."""
    stack = list(nodes)[::-1]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(_children(node)))


def tree_depth(nodes: Iterable[dict[str, Any]]) -> int:
    """Return the number of levels in a forest; 0 when it is empty."""
    deepest = 0
    stack = [(node, 1) for node in nodes]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in _children(node))
    return deepest


def normalize_node(node: dict[str, Any]) -> dict[str, Any]:
    """Keep only structural fields of a node and its descendants."""
    out: dict[str, Any] = {
        "name": node.get("name"),
        "type": node.get("type"),
        "visible": node.get("visible") is not False,
        "role": node.get("role") or None,
        "focusable": node.get("focusable") is True,
    }
    kids = [normalize_node(c) for c in _children(node)]
    if kids:
        out["children"] = kids
    return out


def normalize_frames(frames: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Normalize canonical frames (``{id, name, box, children}``) for hashing."""
    return [
        {"name": frame.get("name"), "children": [normalize_node(c) for c in _children(frame)]}
        for frame in frames
    ]


def checksum(normalized: Any) -> str:
    """Return the sha256 hex digest of canonical JSON."""
    canonical = json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def frames_checksum(frames: Iterable[dict[str, Any]]) -> str:
    return checksum(normalize_frames(frames))


def count_focusables(nodes: Iterable[dict[str, Any]]) -> int:
    """Count visible nodes marked focusable. Hidden nodes never take focus."""
    return sum(
        1
        for n in iter_nodes(nodes)
        if n.get("focusable") is True and n.get("visible") is not False
    )


def count_nodes(nodes: Iterable[dict[str, Any]]) -> int:
    return sum(1 for _ in iter_nodes(nodes))


def collect_ids(nodes: Iterable[dict[str, Any]]) -> set[str]:
    ids: set[str] = set()
    for node in iter_nodes(nodes):
        node_id = node.get("id")
        if isinstance(node_id, str) and node_id:
            ids.add(node_id)
    return ids


def prune_nodes(nodes: list[dict[str, Any]], budget: int) -> list[dict[str, Any]]:
    """Keep at most ``budget`` nodes, chosen breadth-first.

    Shallow nodes survive before deep ones, so the pruned forest keeps the
    overall layout and loses detail at the bottom. Input is not modified.
    """
    kept: set[int] = set()
    queue: deque[dict[str, Any]] = deque(nodes)
    while queue and len(kept) < budget:
        node = queue.popleft()
        kept.add(id(node))
        queue.extend(_children(node))

    def copy(node: dict[str, Any]) -> dict[str, Any]:
        out = {k: v for k, v in node.items() if k != "children"}
        kids = [copy(c) for c in _children(node) if id(c) in kept]
        if kids:
            out["children"] = kids
        return out

    return [copy(n) for n in nodes if id(n) in kept]
