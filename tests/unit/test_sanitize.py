"""Tests for parsing and sanitizing model output."""

import pytest

from focus_annotator.core.heuristics.ordering import heuristic_order
from focus_annotator.core.protocol.sanitize import (
    annotations_by_frame,
    parse_model_content,
    sanitize_order,
)
from focus_annotator.core.tree.host import DictHostNode
from focus_annotator.core.tree.serializer import serialize
from focus_annotator.errors import ModelResponseError
from focus_annotator.models.focus import Geometry


def test_parse_plain_json() -> None:
    assert parse_model_content('{"annotations": []}') == {"annotations": []}


def test_parse_fenced_json() -> None:
    content = '```json\n{"annotations": [{"frameId": "1"}]}\n```'
    assert parse_model_content(content) == {"annotations": [{"frameId": "1"}]}


def test_parse_json_wrapped_in_prose() -> None:
    content = 'Here you go: {"annotations": []} Hope this helps!'
    assert parse_model_content(content) == {"annotations": []}


@pytest.mark.parametrize("content", ["", "no json here", "{broken", "[1, 2]"])
def test_parse_rejects_unusable_content(content: str) -> None:
    with pytest.raises(ModelResponseError):
        parse_model_content(content)


def test_annotations_by_frame_drops_unknown_frames() -> None:
    data = {
        "annotations": [
            {"frameId": "a", "order": [{"id": "1"}], "notes": "n"},
            {"frameId": "zzz", "order": [{"id": "2"}]},
        ]
    }
    assert annotations_by_frame(data, ["a", "b"]) == {"a": ([{"id": "1"}], "n")}


def test_annotation_without_frame_id_binds_to_single_frame() -> None:
    data = {"annotations": [{"order": [{"id": "1"}]}]}
    assert annotations_by_frame(data, ["only"]) == {"only": ([{"id": "1"}], "")}


def test_annotation_without_frame_id_is_dropped_for_multiple_frames() -> None:
    data = {"annotations": [{"order": [{"id": "1"}]}]}
    assert annotations_by_frame(data, ["a", "b"]) == {}


def test_top_level_order_is_accepted() -> None:
    data = {"order": [{"id": "1"}], "notes": "flat"}
    assert annotations_by_frame(data, ["f"]) == {"f": ([{"id": "1"}], "flat")}


def test_missing_annotations_list_is_an_error() -> None:
    with pytest.raises(ModelResponseError):
        annotations_by_frame({"result": "ok"}, ["f"])


def test_sanitize_drops_invented_duplicate_and_root_ids(login: DictHostNode) -> None:
    tree = serialize(login, "web")
    raw = [
        {"id": "3:7", "label": "Sign in", "role": "button"},
        {"id": "9:99", "label": "Ghost", "role": "button"},
        {"id": "3:7", "label": "Again", "role": "button"},
        {"id": "3:1", "label": "Frame", "role": "button"},
        "garbage",
        {"id": "3:3", "label": "Email", "role": "textbox"},
    ]

    result = sanitize_order(raw, tree)

    got = [(i.id, i.label, i.order) for i in result.items]
    assert got == [("3:7", "Sign in", 1), ("3:3", "Email", 2)]
    assert result.dropped == 4
    assert all(i.source == "ai" for i in result.items)
    assert tree.ids() >= {i.id for i in result.items}


def test_sanitize_fills_label_and_role_from_heuristic(login: DictHostNode) -> None:
    tree = serialize(login, "web")
    heuristic = heuristic_order(tree)

    result = sanitize_order([{"id": "3:5", "role": "slider"}], tree, heuristic)

    item = result.items[0]
    assert item.label == "Password"
    assert item.role == "textbox"


def test_sanitize_falls_back_to_node_without_heuristic(login: DictHostNode) -> None:
    tree = serialize(login, "web")
    result = sanitize_order([{"nodeId": "3:9", "name": "  "}], tree)
    item = result.items[0]
    assert item.label == "Forgot password?"
    assert item.role == "link"


def test_sanitize_takes_position_from_tree_not_model(login: DictHostNode) -> None:
    tree = serialize(login, "web")
    raw = [{"id": "3:3", "label": "Email", "role": "textbox", "position": {"x": 999, "y": 999}}]
    item = sanitize_order(raw, tree).items[0]
    assert item.position == Geometry(24, 100, 327, 48)
