"""Tests for the focus order domain models."""

from focus_annotator.models.focus import (
    FocusItem,
    FocusSequence,
    Geometry,
    InferenceHint,
    NodeSnapshot,
)


def test_geometry_reads_both_wire_shapes() -> None:
    assert Geometry.from_wire({"x": 1, "y": 2, "w": 3, "h": 4}) == Geometry(1, 2, 3, 4)
    assert Geometry.from_wire({"x": 1, "y": 2, "width": 3, "height": 4}) == Geometry(1, 2, 3, 4)


def test_geometry_defaults_unusable_values_to_zero() -> None:
    assert Geometry.from_wire(None) == Geometry()
    assert Geometry.from_wire({"x": "12.5", "y": "abc", "w": True}) == Geometry(12.5, 0, 0, 0)


def test_inference_hint_accepts_legacy_role_key() -> None:
    hint = InferenceHint.from_wire({"rnRole": "button", "hint": "row"})
    assert hint == InferenceHint("button", "row", "")
    assert InferenceHint.from_wire({"hint": "no role"}) is None
    assert InferenceHint.from_wire("button") is None


def test_node_snapshot_wire_round_trip() -> None:
    node = NodeSnapshot(
        id="1",
        name="Frame",
        kind="FRAME",
        geometry=Geometry(0, 0, 100, 100),
        children=(
            NodeSnapshot(
                id="2",
                name="Frame 24",
                kind="INSTANCE",
                role="button",
                focusable=True,
                parent_name="Set Row 1",
                inference_hint=InferenceHint("button", "Frame 24 (Row 1)", "Done"),
                text="Done",
            ),
        ),
    )
    wire = node.to_wire()
    assert wire["children"][0]["parentName"] == "Set Row 1"
    assert wire["children"][0]["inference"]["role"] == "button"
    assert NodeSnapshot.from_wire(wire) == node


def test_snapshot_walk_find_and_ids() -> None:
    leaf = NodeSnapshot(id="2", name="b", kind="TEXT")
    root = NodeSnapshot(id="1", name="a", kind="FRAME", children=(leaf,))
    assert [n.id for n in root.walk()] == ["1", "2"]
    assert root.find("2") is leaf
    assert root.find("3") is None
    assert root.ids() == {"1", "2"}


def test_focus_item_from_dict_falls_back_on_bad_fields() -> None:
    item = FocusItem.from_dict(
        {"id": "a", "label": "Go", "order": 0, "source": "robot"}, order=3, source="manual"
    )
    assert item == FocusItem("a", "Go", "button", 3, None, "manual")


def test_focus_item_from_dict_keeps_valid_fields() -> None:
    raw = {"id": "a", "label": "Go", "role": "link", "order": 7, "source": "ai"}
    raw["position"] = {"x": 1, "y": 2, "w": 3, "h": 4}
    item = FocusItem.from_dict(raw, order=1, source="heuristic")
    assert (item.order, item.source, item.role) == (7, "ai", "link")
    assert item.position == Geometry(1, 2, 3, 4)


def test_sequence_to_dict_reports_metadata() -> None:
    items = (
        FocusItem("a", "Header", "header", 1),
        FocusItem("b", "Swap", "button", 2, source="manual"),
        FocusItem("c", "Train", "tab", 3, source="ai"),
    )
    data = FocusSequence("f", "Workout", "web", items, created_at=1, updated_at=2).to_dict()

    assert data["version"] == "1.0"
    assert data["metadata"] == {"totalItems": 3, "interactiveItems": 2, "hasManualEdits": True}
    assert [i["source"] for i in data["items"]] == ["heuristic", "manual", "ai"]
    assert FocusSequence.from_dict(data).items == items


def test_stamped_keeps_creation_time() -> None:
    seq = FocusSequence("f", "Workout", "web", ())
    first = seq.stamped(100)
    second = first.stamped(200)
    assert (first.created_at, first.updated_at) == (100, 100)
    assert (second.created_at, second.updated_at) == (100, 200)
