"""Domain models for focus order proposals."""

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any

# Roles that make a node a focus stop.
INTERACTIVE_ROLES: frozenset[str] = frozenset(
    {"button", "link", "textbox", "tab", "checkbox", "switch", "combobox"}
)

# Structural roles are recorded for context but never receive focus.
STRUCTURAL_ROLES: frozenset[str] = frozenset({"navigation", "landmark", "header"})

KNOWN_ROLES: frozenset[str] = INTERACTIVE_ROLES | STRUCTURAL_ROLES | {"none"}

SOURCES: tuple[str, ...] = ("heuristic", "ai", "manual")

SPEC_VERSION = "1.0"


def _num(value: Any) -> float:
    """Coerce a geometry value to float, zero for anything unusable."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class Geometry:
    """Bounding box in absolute document coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_wire(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.width, "h": self.height}

    @classmethod
    def from_wire(cls, data: Any) -> "Geometry":
        """Read ``{x,y,w,h}`` or ``{x,y,width,height}``; missing fields become zero."""
        if not isinstance(data, dict):
            return cls()
        return cls(
            x=_num(data.get("x")),
            y=_num(data.get("y")),
            width=_num(data.get("w", data.get("width"))),
            height=_num(data.get("h", data.get("height"))),
        )


@dataclass(frozen=True)
class InferenceHint:
    """Shape-based role guess for a node whose name says nothing useful."""

    role: str
    hint: str
    text: str = ""

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role, "hint": self.hint, "text": self.text}

    @classmethod
    def from_wire(cls, data: Any) -> "InferenceHint | None":
        if not isinstance(data, dict):
            return None
        role = data.get("role") or data.get("rnRole")
        if not isinstance(role, str) or not role:
            return None
        return cls(role=role, hint=str(data.get("hint") or ""), text=str(data.get("text") or ""))


@dataclass(frozen=True)
class NodeSnapshot:
    """A depth-bounded serialization of one UI element at request time.

    Semantic leaves (component instances made only of text and shapes) have
    ``children=None`` even when the host node has descendants.
    """

    id: str
    name: str
    kind: str
    visible: bool = True
    geometry: Geometry = field(default_factory=Geometry)
    role: str | None = None
    focusable: bool = False
    parent_name: str | None = None
    inference_hint: InferenceHint | None = None
    text: str | None = None
    children: tuple["NodeSnapshot", ...] | None = None

    def walk(self) -> Iterator["NodeSnapshot"]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children or ():
            yield from child.walk()

    def ids(self) -> set[str]:
        return {n.id for n in self.walk() if n.id}

    def find(self, node_id: str) -> "NodeSnapshot | None":
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape sent to the annotation service."""
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind,
            "visible": self.visible,
            "role": self.role,
            "focusable": self.focusable,
            **self.geometry.to_wire(),
        }
        if self.parent_name is not None:
            out["parentName"] = self.parent_name
        if self.inference_hint is not None:
            out["inference"] = self.inference_hint.to_wire()
        if self.text:
            out["text"] = self.text
        if self.children:
            out["children"] = [c.to_wire() for c in self.children]
        return out

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "NodeSnapshot":
        """Rebuild a snapshot from its wire form. Unknown or broken fields get defaults."""
        raw_children = data.get("children")
        children: tuple[NodeSnapshot, ...] | None = None
        if isinstance(raw_children, list):
            kids = tuple(cls.from_wire(c) for c in raw_children if isinstance(c, dict))
            children = kids or None
        role = data.get("role")
        text = data.get("text")
        parent_name = data.get("parentName")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            kind=str(data.get("type") or ""),
            visible=data.get("visible") is not False,
            geometry=Geometry.from_wire(data),
            role=role if isinstance(role, str) and role else None,
            focusable=data.get("focusable") is True,
            parent_name=parent_name if isinstance(parent_name, str) else None,
            inference_hint=InferenceHint.from_wire(data.get("inference")),
            text=text if isinstance(text, str) and text else None,
            children=children,
        )


@dataclass(frozen=True)
class FocusItem:
    """One entry of a focus order."""

    id: str
    label: str
    role: str
    order: int
    position: Geometry | None = None
    source: str = "heuristic"

    def to_wire(self) -> dict[str, Any]:
        """Shape used inside ``annotations[].order`` of a response."""
        out: dict[str, Any] = {"id": self.id, "label": self.label, "role": self.role}
        if self.position is not None:
            out["position"] = self.position.to_wire()
        return out

    def to_dict(self) -> dict[str, Any]:
        """Shape used in persisted specs."""
        out = self.to_wire()
        out["order"] = self.order
        out["source"] = self.source
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, order: int, source: str) -> "FocusItem":
        position = data.get("position")
        raw_source = data.get("source")
        raw_order = data.get("order")
        return cls(
            id=str(data.get("id") or ""),
            label=str(data.get("label") or ""),
            role=str(data.get("role") or "button"),
            order=raw_order if isinstance(raw_order, int) and raw_order > 0 else order,
            position=Geometry.from_wire(position) if isinstance(position, dict) else None,
            source=raw_source if raw_source in SOURCES else source,
        )

    @property
    def is_interactive(self) -> bool:
        return self.role in INTERACTIVE_ROLES


@dataclass(frozen=True)
class FocusSequence:
    """A curated focus order for one frame, with provenance."""

    frame_id: str
    frame_name: str
    platform: str
    items: tuple[FocusItem, ...]
    checksum: str = ""
    notes: str = ""
    created_at: int = 0
    updated_at: int = 0

    @property
    def has_manual_edits(self) -> bool:
        return any(item.source == "manual" for item in self.items)

    def manual_items(self) -> list[FocusItem]:
        return [item for item in self.items if item.source == "manual"]

    def stamped(self, now_ms: int) -> "FocusSequence":
        """Return a copy stamped for a full-replace write."""
        return replace(self, created_at=self.created_at or now_ms, updated_at=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SPEC_VERSION,
            "frameId": self.frame_id,
            "frameName": self.frame_name,
            "platform": self.platform,
            "checksum": self.checksum,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "metadata": {
                "totalItems": len(self.items),
                "interactiveItems": sum(1 for item in self.items if item.is_interactive),
                "hasManualEdits": self.has_manual_edits,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FocusSequence":
        raw_items = data.get("items") or []
        items = tuple(
            FocusItem.from_dict(raw, order=i, source="heuristic")
            for i, raw in enumerate(raw_items, start=1)
            if isinstance(raw, dict)
        )
        return cls(
            frame_id=str(data.get("frameId") or ""),
            frame_name=str(data.get("frameName") or ""),
            platform=str(data.get("platform") or ""),
            items=items,
            checksum=str(data.get("checksum") or ""),
            notes=str(data.get("notes") or ""),
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
        )


@dataclass(frozen=True)
class ValidationReport:
    """Advisory findings about a finished focus order."""

    is_valid: bool
    issues: tuple[str, ...] = ()
