"""Annotate request model, client-side builder and server-side parser."""

from dataclasses import dataclass, field
from typing import Any

from focus_annotator.config import PLATFORM_ALIASES, PLATFORMS
from focus_annotator.core.tree.normalize import frames_checksum
from focus_annotator.errors import BadRequestError
from focus_annotator.models.focus import Geometry, NodeSnapshot


@dataclass(frozen=True)
class Frame:
    """One selected frame inside an annotate request."""

    id: str
    name: str
    box: Geometry = field(default_factory=Geometry)
    children: list[dict[str, Any]] = field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "box": self.box.to_wire(),
            "children": self.children,
        }

    def snapshot(self) -> NodeSnapshot:
        """Rebuild the frame as a NodeSnapshot tree rooted at the frame."""
        children = tuple(NodeSnapshot.from_wire(c) for c in self.children)
        return NodeSnapshot(
            id=self.id,
            name=self.name,
            kind="FRAME",
            geometry=self.box,
            children=children or None,
        )


@dataclass(frozen=True)
class AnnotateRequest:
    """Canonical annotate request, whatever shape it arrived in."""

    platform: str
    frames: tuple[Frame, ...]
    image: str | None = None
    prompt: str | None = None

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "platform": self.platform,
            "frames": [f.to_wire() for f in self.frames],
        }
        if self.image:
            out["image"] = self.image
        if self.prompt:
            out["prompt"] = self.prompt
        return out

    @property
    def checksum(self) -> str:
        return frames_checksum(f.to_wire() for f in self.frames)


def build_request(
    tree: NodeSnapshot,
    platform: str,
    prompt: str | None = None,
    *,
    image: str | None = None,
) -> AnnotateRequest:
    """Build the outbound request for a serialized frame.

    Args:
        tree: Serialized frame; its children become the frame's children.
        platform: ``web`` or ``native``.
        prompt: Optional free-text hint for the model.
        image: Optional ``data:image/png;base64,...`` rendering of the frame.
    """
    frame = Frame(
        id=tree.id,
        name=tree.name,
        box=tree.geometry,
        children=[child.to_wire() for child in tree.children or ()],
    )
    return AnnotateRequest(
        platform=platform,
        frames=(frame,),
        image=image or None,
        prompt=(prompt or "").strip() or None,
    )


def _parse_platform(raw: Any) -> str:
    if raw is None or raw == "":
        raise BadRequestError("missing_platform", "platform is required")
    if not isinstance(raw, str):
        raise BadRequestError("invalid_platform", f"platform must be a string, got {raw!r}")
    value = PLATFORM_ALIASES.get(raw.strip().lower(), raw.strip().lower())
    if value not in PLATFORMS:
        raise BadRequestError("invalid_platform", f"unknown platform {raw!r}")
    return value


def _parse_frame(raw: Any) -> Frame | None:
    """Accept ``{id,name,box,children}`` and the legacy ``{id,name,tree}``."""
    if not isinstance(raw, dict):
        return None
    tree = raw.get("tree")
    if isinstance(tree, dict):
        children = tree.get("children") or []
        name = raw.get("name") or tree.get("name") or ""
        frame_id = raw.get("id") or tree.get("id") or ""
        box = raw.get("box") if isinstance(raw.get("box"), dict) else tree
    elif isinstance(raw.get("children"), list):
        children = raw["children"]
        name = raw.get("name") or ""
        frame_id = raw.get("id") or ""
        box = raw.get("box")
    else:
        return None
    if not isinstance(children, list):
        return None
    return Frame(
        id=str(frame_id),
        name=str(name),
        box=Geometry.from_wire(box),
        children=[c for c in children if isinstance(c, dict)],
    )


def parse_request(payload: Any) -> AnnotateRequest:
    """Validate an inbound payload and convert it to an AnnotateRequest.

    Legacy shapes (``frame`` instead of ``frames``, ``tree`` inside a frame,
    ``rn`` platform tag, UI messages wrapped in ``pluginMessage``) are
    adapted here and nowhere else.

    Raises:
        BadRequestError: With a machine-readable ``reason``.
    """
    if isinstance(payload, dict) and isinstance(payload.get("pluginMessage"), dict):
        payload = payload["pluginMessage"]
    if not isinstance(payload, dict):
        raise BadRequestError("malformed_payload", "request body must be a JSON object")

    platform = _parse_platform(payload.get("platform"))

    raw_frames: Any = payload.get("frames")
    if raw_frames is None and isinstance(payload.get("frame"), dict):
        raw_frames = [payload["frame"]]
    if not isinstance(raw_frames, list) or not raw_frames:
        raise BadRequestError("missing_tree", "frames with a tree are required")

    frames = [_parse_frame(f) for f in raw_frames]
    if any(f is None for f in frames):
        raise BadRequestError("missing_tree", "every frame needs children or a tree")

    image = payload.get("image")
    if image is not None and not isinstance(image, str):
        raise BadRequestError("malformed_payload", "image must be a data URL string")
    prompt = payload.get("prompt")
    if prompt is not None and not isinstance(prompt, str):
        raise BadRequestError("malformed_payload", "prompt must be a string")

    return AnnotateRequest(
        platform=platform,
        frames=tuple(f for f in frames if f is not None),
        image=image or None,
        prompt=(prompt or "").strip() or None,
    )
