"""Reading-order heuristics: candidate extraction, ordering, labeling, validation."""

import functools
import re
from collections import Counter
from collections.abc import Sequence

from focus_annotator.config import BACKWARD_JUMP_THRESHOLD, ROW_TOLERANCE
from focus_annotator.core.tree.serializer import compare_reading_order, is_auto_name, words_of
from focus_annotator.models.focus import (
    INTERACTIVE_ROLES,
    FocusItem,
    NodeSnapshot,
    ValidationReport,
)

# Tie-break inside one row band only. Lower comes first.
ROLE_PRIORITY: dict[str, int] = {"button": 0, "textbox": 1, "link": 2, "tab": 3}
_DEFAULT_PRIORITY = 9

LABEL_LIMIT = 50

_ROLE_WORDS = re.compile(r"\b(button|btn|link|input|field|textbox|select|textarea|tab|cta)\b")
_PARENT_TAIL = re.compile(r"([A-Za-z]+\s*\d+)\s*$")


def _effective_role(node: NodeSnapshot) -> str | None:
    if node.role:
        return node.role
    if node.inference_hint is not None:
        return node.inference_hint.role
    return None


def extract_candidates(tree: NodeSnapshot, *, include_root: bool = False) -> list[NodeSnapshot]:
    """Flatten a tree into the nodes worth considering for focus order.

    Candidates are text-bearing nodes, nodes whose name or shape suggests
    an interactive control, and nodes already marked focusable.
    """
    out: list[NodeSnapshot] = []
    for node in tree.walk():
        if node is tree and not include_root:
            continue
        if not node.visible:
            continue
        if (
            node.focusable
            or _effective_role(node) in INTERACTIVE_ROLES
            or node.inference_hint is not None
            or node.text
        ):
            out.append(node)
    return out


def _descendant_text(node: NodeSnapshot) -> str:
    for child in node.walk():
        if child.text:
            return child.text
    return ""


def short_id(node_id: str) -> str:
    compact = re.sub(r"[^A-Za-z0-9]", "", node_id)
    return compact[-4:] or node_id


def clean_name(name: str) -> str:
    """Turn a layer name into a readable label, or ``""`` if it is auto-generated."""
    words = words_of(name)
    if not words or is_auto_name(words) or words.replace(" ", "").isdigit():
        return ""
    stripped = " ".join(_ROLE_WORDS.sub(" ", words).split())
    return (stripped or words).title()


def label_for(node: NodeSnapshot) -> str:
    """Best human label for a node; never empty."""
    text = _descendant_text(node).strip()
    if text:
        return text[:LABEL_LIMIT]
    if node.inference_hint is not None and node.inference_hint.text.strip():
        return node.inference_hint.text.strip()[:LABEL_LIMIT]
    cleaned = clean_name(node.name)
    if cleaned:
        return cleaned[:LABEL_LIMIT]
    element_type = (_effective_role(node) or node.kind or "element").replace("_", " ").title()
    return f"{element_type} {short_id(node.id)}"


def _parent_suffix(parent_name: str) -> str:
    """``Set Row 1`` -> ``Row 1``; otherwise the whole parent name."""
    match = _PARENT_TAIL.search(parent_name.strip())
    return match.group(1) if match else parent_name.strip()


def disambiguate_labels(labels: Sequence[str], nodes: Sequence[NodeSnapshot]) -> list[str]:
    """Make repeated labels distinct using the parent name, then the short id."""
    counts = Counter(labels)
    out = [
        f"{label} ({_parent_suffix(node.parent_name)})"
        if counts[label] > 1 and node.parent_name
        else label
        for label, node in zip(labels, nodes)
    ]
    counts = Counter(out)
    return [
        f"{label} #{short_id(node.id)}" if counts[label] > 1 else label
        for label, node in zip(out, nodes)
    ]


def _compare(a: NodeSnapshot, b: NodeSnapshot, tolerance: float) -> int:
    result = compare_reading_order(a.geometry, b.geometry, tolerance)
    if result:
        return result
    pa = ROLE_PRIORITY.get(_effective_role(a) or "", _DEFAULT_PRIORITY)
    pb = ROLE_PRIORITY.get(_effective_role(b) or "", _DEFAULT_PRIORITY)
    if pa != pb:
        return -1 if pa < pb else 1
    return (a.id > b.id) - (a.id < b.id)


def compute_order(
    candidates: Sequence[NodeSnapshot],
    *,
    focusable_only: bool = True,
    row_tolerance: float = ROW_TOLERANCE,
) -> list[FocusItem]:
    """Order candidates by reading order and turn them into focus items.

    Pure and deterministic. Reading order dominates; role priority only
    breaks ties inside one row band at the same left edge.

    Args:
        candidates: Nodes from :func:`extract_candidates`.
        focusable_only: Emit only focusable candidates (the focus order).
            With False every candidate is emitted (the reading order).
        row_tolerance: Top-edge band treated as one row.

    Returns:
        Items with contiguous orders starting at 1 and ``source="heuristic"``.
    """
    seen: set[str] = set()
    unique: list[NodeSnapshot] = []
    for node in candidates:
        if node.id in seen:
            continue
        seen.add(node.id)
        unique.append(node)

    ordered = sorted(
        unique, key=functools.cmp_to_key(lambda a, b: _compare(a, b, row_tolerance))
    )
    if focusable_only:
        ordered = [n for n in ordered if n.focusable]

    labels = disambiguate_labels([label_for(n) for n in ordered], ordered)
    return [
        FocusItem(
            id=node.id,
            label=label,
            role=_effective_role(node) or "none",
            order=index,
            position=node.geometry,
            source="heuristic",
        )
        for index, (node, label) in enumerate(zip(ordered, labels), start=1)
    ]


def heuristic_order(tree: NodeSnapshot) -> list[FocusItem]:
    """Shortcut for ``compute_order(extract_candidates(tree))``."""
    return compute_order(extract_candidates(tree))


def validate_sequence(
    items: Sequence[FocusItem],
    *,
    expected_interactive: bool = False,
    jump_threshold: float = BACKWARD_JUMP_THRESHOLD,
) -> ValidationReport:
    """Smell-test a finished focus order. Findings are advisory only.

    Args:
        items: The focus order to check.
        expected_interactive: The source tree had focusable candidates, so an
            order without interactive items is suspicious.
        jump_threshold: Vertical distance counted as a backward jump.
    """
    issues: list[str] = []

    orders = [item.order for item in items]
    if len(set(orders)) != len(orders):
        issues.append("Duplicate focus order numbers found")
    elif sorted(orders) != list(range(1, len(orders) + 1)):
        issues.append("Focus order numbers are not contiguous from 1")

    if expected_interactive and not any(item.is_interactive for item in items):
        issues.append("No interactive elements found in focus order")

    by_order = sorted(items, key=lambda item: item.order)
    for prev, curr in zip(by_order, by_order[1:]):
        if prev.position is None or curr.position is None:
            continue
        if curr.position.y < prev.position.y - jump_threshold:
            issues.append(f"Focus order {curr.order} jumps backwards vertically")

    return ValidationReport(is_valid=not issues, issues=tuple(issues))
