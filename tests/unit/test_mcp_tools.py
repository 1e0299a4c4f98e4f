"""Tests for MCP tool core functions."""

from typing import Any

from focus_annotator.mcp.server import (
    focus_propose_order,
    focus_serialize,
    focus_validate_order,
)
from focus_annotator.service.annotator import AnnotationService
from tests.unit.samples import login_frame, workout_frame


def test_focus_serialize_returns_wire_tree() -> None:
    result = focus_serialize(workout_frame())
    assert result["truncated"] is False
    assert result["node_count"] >= 4
    tree = result["tree"]
    assert tree["id"] == "1:1"
    assert [c["id"] for c in tree["children"]] == ["1:2", "1:4", "1:6"]
    header = tree["children"][0]
    assert header["focusable"] is False


def test_focus_serialize_respects_bounds() -> None:
    result = focus_serialize(workout_frame(), max_node_count=2)
    assert result["truncated"] is True
    assert result["node_count"] == 2


def test_focus_serialize_reports_bad_platform() -> None:
    assert "error" in focus_serialize(workout_frame(), platform="ios")


def test_focus_propose_order_from_raw_tree() -> None:
    result = focus_propose_order(AnnotationService(), platform="web", tree=login_frame())
    assert result["status"] == 200
    assert result["ok"] is True
    order = result["annotations"][0]["order"]
    assert [item["id"] for item in order] == ["3:3", "3:5", "3:7", "3:9"]


def test_focus_propose_order_from_serialized_frames() -> None:
    service = AnnotationService()
    frames = [focus_serialize(login_frame())["tree"]]

    first = focus_propose_order(service, platform="web", frames=frames)
    second = focus_propose_order(service, platform="web", frames=frames)

    assert first["status"] == 200
    assert second["cache"] is True


def test_focus_propose_order_bad_platform() -> None:
    result = focus_propose_order(AnnotationService(), platform="ios", tree=login_frame())
    assert result["status"] == 400
    assert result["reason"] == "invalid_platform"


def test_focus_propose_order_without_frames() -> None:
    result = focus_propose_order(AnnotationService(), platform="web")
    assert result["status"] == 400
    assert result["reason"] == "missing_tree"


def test_focus_validate_order_flags_problems() -> None:
    items: list[dict[str, Any]] = [
        {"id": "a", "label": "Footer link", "role": "link", "order": 1,
         "position": {"x": 0, "y": 700, "w": 10, "h": 10}},
        {"id": "b", "label": "Search", "role": "textbox", "order": 1,
         "position": {"x": 0, "y": 20, "w": 10, "h": 10}},
    ]

    result = focus_validate_order(items)

    assert result["valid"] is False
    assert result["count"] == 2
    assert "Duplicate focus order numbers found" in result["issues"]
    assert any("jumps backwards" in issue for issue in result["issues"])


def test_focus_validate_order_accepts_clean_order() -> None:
    items = [
        {"id": "a", "label": "Email", "role": "textbox"},
        {"id": "b", "label": "Sign in", "role": "button"},
    ]
    assert focus_validate_order(items, expected_interactive=True) == {
        "valid": True,
        "issues": [],
        "count": 2,
    }
