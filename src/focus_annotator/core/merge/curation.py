"""Manual curation edits on a focus order."""

from collections.abc import Sequence
from dataclasses import replace

from focus_annotator.core.merge.merger import reindex
from focus_annotator.models.focus import KNOWN_ROLES, FocusItem


def _index_of(items: Sequence[FocusItem], node_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == node_id:
            return index
    msg = f"Node {node_id!r} is not in the focus order"
    raise KeyError(msg)


def move_item(items: Sequence[FocusItem], node_id: str, new_position: int) -> list[FocusItem]:
    """Move an item to a 1-based position.

    After a drag the whole order is a human decision, so every item
    becomes manual.
    """
    result = list(items)
    item = result.pop(_index_of(result, node_id))
    target = max(1, min(new_position, len(result) + 1))
    result.insert(target - 1, item)
    return reindex(replace(i, source="manual") for i in result)


def rename_item(items: Sequence[FocusItem], node_id: str, label: str) -> list[FocusItem]:
    """Give one item a human label."""
    label = label.strip()
    if not label:
        msg = "Label must not be empty"
        raise ValueError(msg)
    index = _index_of(items, node_id)
    result = list(items)
    result[index] = replace(result[index], label=label, source="manual")
    return reindex(result)


def set_item_role(items: Sequence[FocusItem], node_id: str, role: str) -> list[FocusItem]:
    """Override the role classification of one item."""
    role = role.strip().lower()
    if role not in KNOWN_ROLES:
        msg = f"Unknown role {role!r}"
        raise ValueError(msg)
    index = _index_of(items, node_id)
    result = list(items)
    result[index] = replace(result[index], role=role, source="manual")
    return reindex(result)


def remove_item(items: Sequence[FocusItem], node_id: str) -> list[FocusItem]:
    """Drop one item; the remaining order is confirmed manually."""
    index = _index_of(items, node_id)
    result = [item for i, item in enumerate(items) if i != index]
    return reindex(replace(i, source="manual") for i in result)
