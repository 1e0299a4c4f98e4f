"""Tests for reading-order heuristics."""

from focus_annotator.core.heuristics.ordering import (
    clean_name,
    compute_order,
    disambiguate_labels,
    extract_candidates,
    heuristic_order,
    label_for,
    short_id,
    validate_sequence,
)
from focus_annotator.core.tree.host import DictHostNode
from focus_annotator.core.tree.serializer import serialize
from focus_annotator.models.focus import FocusItem, Geometry, NodeSnapshot


def _control(node_id: str, role: str, x: float, y: float, **kwargs: object) -> NodeSnapshot:
    return NodeSnapshot(
        id=node_id,
        name=node_id,
        kind="INSTANCE",
        geometry=Geometry(x, y, 80, 40),
        role=role,
        focusable=True,
        **kwargs,  # type: ignore[arg-type]
    )


def _item(node_id: str, order: int, role: str = "button", y: float = 0.0) -> FocusItem:
    return FocusItem(node_id, node_id.upper(), role, order, Geometry(0, y, 10, 10))


def test_header_swap_train_scenario(workout: DictHostNode) -> None:
    items = heuristic_order(serialize(workout, "native"))
    assert [(i.id, i.label, i.role, i.order) for i in items] == [
        ("1:4", "Swap", "button", 1),
        ("1:6", "Train", "tab", 2),
    ]
    assert all(i.source == "heuristic" for i in items)


def test_reading_order_includes_non_focusable_text(workout: DictHostNode) -> None:
    candidates = extract_candidates(serialize(workout, "native"))
    items = compute_order(candidates, focusable_only=False)
    assert [i.id for i in items] == ["1:3", "1:4", "1:6"]
    assert items[0].label == "Your Workout"
    assert items[0].role == "none"


def test_repeated_generic_instances_are_labelled_by_row(set_rows: DictHostNode) -> None:
    items = heuristic_order(serialize(set_rows, "native"))
    assert [i.label for i in items] == ["Done (Row 1)", "Done (Row 2)"]
    assert [i.role for i in items] == ["button", "button"]


def test_role_priority_breaks_ties_at_same_position() -> None:
    items = compute_order(
        [
            _control("b", "textbox", 10, 100),
            _control("a", "link", 10, 100),
            _control("c", "button", 10, 100),
        ]
    )
    assert [i.id for i in items] == ["c", "b", "a"]


def test_left_edge_wins_inside_row_band() -> None:
    items = compute_order(
        [_control("right", "button", 200, 100), _control("left", "link", 10, 103)]
    )
    assert [i.id for i in items] == ["left", "right"]


def test_rows_outside_tolerance_sort_top_first() -> None:
    items = compute_order([_control("low", "button", 0, 200), _control("high", "button", 300, 100)])
    assert [i.id for i in items] == ["high", "low"]


def test_duplicate_candidates_are_dropped() -> None:
    node = _control("x", "button", 0, 0)
    items = compute_order([node, node])
    assert len(items) == 1
    assert items[0].order == 1


def test_compute_order_is_deterministic(login: DictHostNode) -> None:
    tree = serialize(login, "web")
    assert compute_order(extract_candidates(tree)) == compute_order(extract_candidates(tree))


def test_order_values_are_contiguous(login: DictHostNode) -> None:
    items = heuristic_order(serialize(login, "web"))
    assert [i.order for i in items] == list(range(1, len(items) + 1))
    assert [i.role for i in items] == ["textbox", "textbox", "button", "link"]


def test_label_prefers_text_then_name_then_role_and_id() -> None:
    with_text = _control("n1", "button", 0, 0, text="Continue")
    named = NodeSnapshot(id="n2", name="Submit Button", kind="INSTANCE", role="button")
    generic = NodeSnapshot(id="12:345", name="Frame 9", kind="INSTANCE", role="button")
    assert label_for(with_text) == "Continue"
    assert label_for(named) == "Submit"
    assert label_for(generic) == "Button 2345"


def test_clean_name() -> None:
    assert clean_name("Submit Button") == "Submit"
    assert clean_name("Button") == "Button"
    assert clean_name("Frame 12") == ""
    assert clean_name("42") == ""


def test_short_id_keeps_last_alphanumerics() -> None:
    assert short_id("I12:345;6:7") == "4567"
    assert short_id("ab") == "ab"


def test_disambiguate_falls_back_to_short_id_without_parent() -> None:
    nodes = [
        NodeSnapshot(id="1:11", name="x", kind="TEXT"),
        NodeSnapshot(id="1:22", name="x", kind="TEXT"),
    ]
    assert disambiguate_labels(["Save", "Save"], nodes) == ["Save #111", "Save #122"]


def test_disambiguate_leaves_unique_labels_alone() -> None:
    nodes = [
        NodeSnapshot(id="a", name="a", kind="TEXT"),
        NodeSnapshot(id="b", name="b", kind="TEXT"),
    ]
    assert disambiguate_labels(["One", "Two"], nodes) == ["One", "Two"]


def test_validate_accepts_clean_sequence() -> None:
    report = validate_sequence([_item("a", 1, y=0), _item("b", 2, y=40)], expected_interactive=True)
    assert report.is_valid
    assert report.issues == ()


def test_validate_reports_duplicate_orders() -> None:
    report = validate_sequence([_item("a", 1), _item("b", 1)])
    assert not report.is_valid
    assert "Duplicate focus order numbers found" in report.issues


def test_validate_reports_gaps() -> None:
    report = validate_sequence([_item("a", 1), _item("b", 3)])
    assert "Focus order numbers are not contiguous from 1" in report.issues


def test_validate_reports_missing_interactive_items() -> None:
    report = validate_sequence([_item("a", 1, role="none")], expected_interactive=True)
    assert "No interactive elements found in focus order" in report.issues


def test_validate_reports_backward_jumps() -> None:
    report = validate_sequence([_item("a", 1, y=300), _item("b", 2, y=100)])
    assert report.issues == ("Focus order 2 jumps backwards vertically",)


def test_small_upward_step_is_not_a_jump() -> None:
    report = validate_sequence([_item("a", 1, y=300), _item("b", 2, y=260)])
    assert report.is_valid


def test_names_mentioning_containers_still_make_labels() -> None:
    chat = NodeSnapshot(
        id="5:77", name="Group Chat Button", kind="INSTANCE", role="button", focusable=True
    )
    assert label_for(chat) == "Group Chat"
    assert clean_name("Checkout Frame Link") == "Checkout Frame"
    assert clean_name("Group 4") == ""
