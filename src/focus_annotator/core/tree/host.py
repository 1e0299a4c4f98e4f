"""Adapter exposing a JSON export of a design document as host nodes."""

from typing import Any

from focus_annotator.models.focus import Geometry


class DictHostNode:
    """Host node backed by a plain dict, as produced by a design-tool export.

    Recognized keys: ``id``, ``name``, ``type``, ``visible``, ``characters``,
    ``absoluteBoundingBox`` (preferred) or ``x/y/width/height``, ``children``,
    ``pluginData``. Tag writes go into ``pluginData`` of the wrapped dict so
    that dumping the root dict again persists them.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self.data = data
        self.id = str(data.get("id") or "")
        self.name = str(data.get("name") or "")
        self.kind = str(data.get("type") or "")
        self.visible = data.get("visible") is not False
        characters = data.get("characters")
        self.characters = characters if isinstance(characters, str) else None
        self.geometry = _read_geometry(data)
        self._children: list[DictHostNode] | None = None

    @property
    def children(self) -> list["DictHostNode"]:
        if self._children is None:
            raw = self.data.get("children")
            raw = raw if isinstance(raw, list) else []
            self._children = [DictHostNode(c) for c in raw if isinstance(c, dict)]
        return self._children

    def get_tag(self, key: str) -> str:
        tags = self.data.get("pluginData")
        if not isinstance(tags, dict):
            return ""
        value = tags.get(key, "")
        return value if isinstance(value, str) else ""

    def set_tag(self, key: str, value: str) -> None:
        tags = self.data.setdefault("pluginData", {})
        tags[key] = value

    def find(self, node_id: str) -> "DictHostNode | None":
        if self.id == node_id:
            return self
        for child in self.children:
            found = child.find(node_id)
            if found is not None:
                return found
        return None

    def __repr__(self) -> str:
        return f"DictHostNode(id={self.id!r}, name={self.name!r}, kind={self.kind!r})"


def _read_geometry(data: dict[str, Any]) -> Geometry | None:
    box = data.get("absoluteBoundingBox")
    if isinstance(box, dict):
        return Geometry.from_wire(box)
    if any(k in data for k in ("x", "y", "width", "height")):
        return Geometry.from_wire(data)
    return None
