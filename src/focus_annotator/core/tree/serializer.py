"""Serialize a host node hierarchy into bounded, annotated NodeSnapshots."""

import functools
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from focus_annotator.config import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODE_COUNT,
    PLATFORM_ALIASES,
    PLATFORMS,
    ROW_TOLERANCE,
    TAG_FOCUSABLE,
    TAG_ROLE,
)
from focus_annotator.models.focus import INTERACTIVE_ROLES, Geometry, InferenceHint, NodeSnapshot
from focus_annotator.protocols import HostNodeProtocol

# Host kinds that are pure presentation: text and vector shapes.
STATIC_KINDS: frozenset[str] = frozenset(
    {"TEXT", "RECTANGLE", "ELLIPSE", "POLYGON", "STAR", "VECTOR", "LINE", "BOOLEAN_OPERATION"}
)
COMPONENT_KINDS: frozenset[str] = frozenset({"INSTANCE", "COMPONENT"})

# First match wins.
_ROLE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("link", re.compile(r"\b(link|back|learn more|details)\b")),
    ("button", re.compile(r"\b(button|btn|cta|start|submit|swap|save|next|continue)\b")),
    ("textbox", re.compile(r"\b(input|field|email|password|search|textbox)\b")),
    ("tab", re.compile(r"\b(tab|pill|segment)\b")),
    ("navigation", re.compile(r"\b(menu|nav|navigation)\b")),
    ("landmark", re.compile(r"\b(header|hero|app bar|top nav)\b")),
)

_AUTO_NAME = re.compile(r"^(frame|group|rectangle|instance|component|vector|ellipse|div)(\s+\d+)?$")
_CAMEL = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[-_/.:]+")

TEXT_LIMIT = 80
HINT_TEXT_LIMIT = 50


@dataclass(frozen=True)
class SerializeOptions:
    """Traversal bounds for :func:`serialize`."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_node_count: int = DEFAULT_MAX_NODE_COUNT
    row_tolerance: float = ROW_TOLERANCE


@dataclass
class SerializeStats:
    """Counters collected while serializing one tree."""

    node_count: int = 0
    truncated: bool = False
    boundaries: int = 0
    inferred: int = 0


def normalize_platform(platform: str) -> str:
    """Map legacy platform tags to ``web``/``native``; raise on anything else."""
    value = PLATFORM_ALIASES.get(platform, platform)
    if value not in PLATFORMS:
        msg = f"Unknown platform {platform!r}, expected one of {PLATFORMS!r}"
        raise ValueError(msg)
    return value


def words_of(name: str) -> str:
    """Lower-case a layer name and split camelCase and separators into words."""
    return _SEPARATORS.sub(" ", _CAMEL.sub(r"\1 \2", name or "")).lower().strip()


def guess_role_from_name(name: str) -> str | None:
    """Guess a semantic role from keywords in a layer name."""
    text = words_of(name)
    for role, pattern in _ROLE_PATTERNS:
        if pattern.search(text):
            return role
    return None


def is_auto_name(name: str) -> bool:
    """True for names the design tool generates, such as ``Frame 24`` or ``Group``."""
    n = (name or "").strip().lower()
    return n == "div" or bool(_AUTO_NAME.match(n))


def is_generic_name(name: str) -> bool:
    """True for names that say nothing about the control, so shape decides.

    Broader than :func:`is_auto_name`: any name mentioning a frame or group
    counts, since such layers are usually containers.
    """
    n = (name or "").strip().lower()
    return "frame" in n or "group" in n or is_auto_name(n)


def compare_reading_order(a: Geometry, b: Geometry, tolerance: float = ROW_TOLERANCE) -> int:
    """Top edge first, left edge second; top edges within ``tolerance`` share a row."""
    if abs(a.y - b.y) > tolerance:
        return -1 if a.y < b.y else 1
    if a.x != b.x:
        return -1 if a.x < b.x else 1
    return 0


def reading_order_key(
    geometry_of: Callable[[HostNodeProtocol], Geometry], tolerance: float = ROW_TOLERANCE
) -> Callable[[HostNodeProtocol], object]:
    return functools.cmp_to_key(
        lambda a, b: compare_reading_order(geometry_of(a), geometry_of(b), tolerance)
    )


def _geometry_of(node: HostNodeProtocol) -> Geometry:
    geometry = getattr(node, "geometry", None)
    return geometry if isinstance(geometry, Geometry) else Geometry()


def _tag(node: HostNodeProtocol, key: str) -> str:
    try:
        value = node.get_tag(key)
    except Exception:
        logger.debug("Cannot read tag {!r} on node {!r}", key, getattr(node, "id", "?"))
        return ""
    return value if isinstance(value, str) else ""


def classify(node: HostNodeProtocol) -> tuple[str | None, bool, bool]:
    """Return ``(role, focusable, forced)`` for a node.

    Host-side tags override the name heuristic; ``forced`` reports whether
    they did.
    """
    name_role = guess_role_from_name(node.name)
    tagged = _tag(node, TAG_FOCUSABLE).strip().lower()
    tag_role = _tag(node, TAG_ROLE).strip().lower() or None

    if tagged == "true":
        return tag_role or name_role or "button", True, True
    if tagged == "false":
        return tag_role or name_role, False, True
    if tag_role:
        return tag_role, tag_role in INTERACTIVE_ROLES, True
    return name_role, name_role in INTERACTIVE_ROLES, False


def _visible_children(node: HostNodeProtocol) -> list[HostNodeProtocol]:
    try:
        children = node.children or []
    except Exception:
        logger.debug("Cannot enumerate children of node {!r}", getattr(node, "id", "?"))
        return []
    return [c for c in children if getattr(c, "visible", True) is not False]


def is_semantic_boundary(
    node: HostNodeProtocol, visible_children: Sequence[HostNodeProtocol]
) -> bool:
    """A component instance whose visible children are all text or shapes."""
    if node.kind not in COMPONENT_KINDS:
        return False
    return all(child.kind in STATIC_KINDS for child in visible_children)


def _clip(text: str, limit: int) -> str:
    return " ".join(text.split())[:limit]


def _leaf_text(visible_children: Sequence[HostNodeProtocol]) -> str:
    parts = [
        c.characters.strip()
        for c in visible_children
        if c.kind == "TEXT" and isinstance(c.characters, str) and c.characters.strip()
    ]
    return _clip(" ".join(parts), TEXT_LIMIT)


def infer_from_shape(geometry: Geometry, text: str) -> InferenceHint | None:
    """Guess input vs. button from the box of a text-bearing leaf.

    Wide and shallow reads as an input; compact reads as a button.
    """
    if not text or geometry.height <= 0 or geometry.width <= 0:
        return None
    aspect = geometry.width / geometry.height
    snippet = text[:HINT_TEXT_LIMIT]
    if aspect > 2.5 and 20 < geometry.height < 80:
        return InferenceHint(role="textbox", hint="probable input", text=snippet)
    if aspect < 4 and 30 < geometry.height < 80:
        return InferenceHint(role="button", hint="probable button", text=snippet)
    return None


class _Walker:
    def __init__(self, platform: str, options: SerializeOptions) -> None:
        self.platform = platform
        self.options = options
        self.stats = SerializeStats()

    def visit(
        self, node: HostNodeProtocol, depth: int, parent_name: str | None
    ) -> NodeSnapshot | None:
        if depth > self.options.max_depth:
            self.stats.truncated = True
            return None
        if depth > 0 and self.stats.node_count >= self.options.max_node_count:
            self.stats.truncated = True
            return None
        self.stats.node_count += 1

        role, focusable, forced = classify(node)
        geometry = _geometry_of(node)
        visible_children = _visible_children(node)
        boundary = is_semantic_boundary(node, visible_children)

        text: str | None = None
        if node.kind == "TEXT" and node.characters:
            text = _clip(node.characters, TEXT_LIMIT) or None
        elif boundary:
            text = _leaf_text(visible_children) or None

        hint: InferenceHint | None = None
        if boundary and is_generic_name(node.name):
            hint = infer_from_shape(geometry, text or "")
            if hint is not None:
                self.stats.inferred += 1
                logger.debug("Inferred {} for {!r} (text: {!r})", hint.hint, node.name, hint.text)
                if not forced and not focusable:
                    role, focusable = hint.role, True

        children: tuple[NodeSnapshot, ...] | None = None
        if boundary:
            if visible_children:
                self.stats.boundaries += 1
                logger.debug(
                    "Semantic boundary at {!r} ({}), children omitted", node.name, node.kind
                )
        else:
            ordered = sorted(
                visible_children,
                key=reading_order_key(_geometry_of, self.options.row_tolerance),
            )
            kids: list[NodeSnapshot] = []
            for child in ordered:
                if self.stats.node_count >= self.options.max_node_count:
                    self.stats.truncated = True
                    break
                snapshot = self.visit(child, depth + 1, node.name)
                if snapshot is not None:
                    kids.append(snapshot)
            children = tuple(kids) or None

        return NodeSnapshot(
            id=node.id,
            name=node.name,
            kind=node.kind,
            visible=node.visible is not False,
            geometry=geometry,
            role=role,
            focusable=focusable,
            parent_name=parent_name or None,
            inference_hint=hint,
            text=text,
            children=children,
        )


def serialize_with_stats(
    root: HostNodeProtocol, platform: str, options: SerializeOptions | None = None
) -> tuple[NodeSnapshot, SerializeStats]:
    """Serialize ``root`` and report traversal counters."""
    walker = _Walker(normalize_platform(platform), options or SerializeOptions())
    snapshot = walker.visit(root, 0, None)
    assert snapshot is not None  # the root is never cut
    if walker.stats.truncated:
        logger.debug(
            "Serialization of {!r} truncated at {} nodes", root.name, walker.stats.node_count
        )
    return snapshot, walker.stats


def serialize(
    root: HostNodeProtocol, platform: str, options: SerializeOptions | None = None
) -> NodeSnapshot:
    """Serialize a host node tree for focus order analysis.

    Traversal is pre-order and bounded by ``options.max_depth`` and
    ``options.max_node_count``; hitting a bound truncates the tree instead of
    failing. Hidden children are skipped, siblings are sorted in reading
    order, and component instances made only of text and shapes are emitted
    as semantic leaves without children.

    Args:
        root: Host node to start from, usually the selected frame.
        platform: ``web`` or ``native`` (legacy ``rn`` is accepted).
        options: Traversal bounds.

    Returns:
        The root NodeSnapshot.
    """
    snapshot, _stats = serialize_with_stats(root, platform, options)
    return snapshot
