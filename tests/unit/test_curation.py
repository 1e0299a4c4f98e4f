"""Tests for manual curation edits."""

import pytest

from focus_annotator.core.merge.curation import move_item, remove_item, rename_item, set_item_role
from focus_annotator.models.focus import FocusItem


@pytest.fixture
def items() -> list[FocusItem]:
    return [
        FocusItem("a", "Email", "textbox", 1, source="ai"),
        FocusItem("b", "Password", "textbox", 2, source="ai"),
        FocusItem("c", "Sign in", "button", 3, source="heuristic"),
    ]


def test_move_reorders_and_marks_everything_manual(items: list[FocusItem]) -> None:
    result = move_item(items, "c", 1)
    assert [(i.id, i.order) for i in result] == [("c", 1), ("a", 2), ("b", 3)]
    assert {i.source for i in result} == {"manual"}


def test_move_clamps_position(items: list[FocusItem]) -> None:
    assert [i.id for i in move_item(items, "a", 99)] == ["b", "c", "a"]
    assert [i.id for i in move_item(items, "c", 0)] == ["c", "a", "b"]


def test_rename_marks_only_that_item_manual(items: list[FocusItem]) -> None:
    result = rename_item(items, "b", "  New password ")
    assert result[1].label == "New password"
    assert result[1].source == "manual"
    assert result[0].source == "ai"
    assert [i.order for i in result] == [1, 2, 3]


def test_rename_rejects_empty_label(items: list[FocusItem]) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        rename_item(items, "a", "   ")


def test_set_role_validates_role(items: list[FocusItem]) -> None:
    result = set_item_role(items, "c", "Link")
    assert result[2].role == "link"
    assert result[2].source == "manual"
    with pytest.raises(ValueError, match="Unknown role"):
        set_item_role(items, "c", "slider")


def test_remove_reindexes_remaining(items: list[FocusItem]) -> None:
    result = remove_item(items, "a")
    assert [(i.id, i.order, i.source) for i in result] == [("b", 1, "manual"), ("c", 2, "manual")]


def test_unknown_node_raises_key_error(items: list[FocusItem]) -> None:
    with pytest.raises(KeyError):
        remove_item(items, "zzz")
