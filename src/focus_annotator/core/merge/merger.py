"""Combine heuristic, AI and manual focus orders into one sequence."""

from collections.abc import Iterable, Sequence
from dataclasses import replace

from focus_annotator.models.focus import FocusItem, NodeSnapshot


def reindex(items: Iterable[FocusItem]) -> list[FocusItem]:
    """Assign contiguous orders 1..N in iteration order."""
    return [replace(item, order=index) for index, item in enumerate(items, start=1)]


def merge(
    heuristic: Sequence[FocusItem],
    ai: Sequence[FocusItem] | None,
    manual: Sequence[FocusItem] | None,
) -> list[FocusItem]:
    """Merge the three sources under strict precedence.

    Manual entries come first in their own order. AI entries for node ids
    not covered manually follow in AI order, then heuristic entries for ids
    covered by neither. A node id appears at most once, taken from the
    highest-precedence source. Incoming order numbers are ignored and the
    result is re-indexed 1..N.
    """
    taken: set[str] = set()
    result: list[FocusItem] = []
    for source in (manual or (), ai or (), heuristic):
        for item in source:
            if item.id in taken:
                continue
            taken.add(item.id)
            result.append(item)
    return reindex(result)


def carry_forward_manual(
    previous: Sequence[FocusItem], tree: NodeSnapshot
) -> list[FocusItem]:
    """Match previously saved manual items to a fresh tree by node id.

    Items whose node no longer exists are dropped. Survivors get their
    position refreshed from the new tree; label, role and relative order
    are the human's and stay as they were.
    """
    out: list[FocusItem] = []
    for item in previous:
        if item.source != "manual":
            continue
        node = tree.find(item.id)
        if node is None:
            continue
        out.append(replace(item, position=node.geometry))
    return reindex(out)
