"""Parse and sanitize untrusted model output against the source tree."""

import json
import re
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from focus_annotator.core.heuristics.ordering import LABEL_LIMIT, label_for
from focus_annotator.errors import ModelResponseError
from focus_annotator.models.focus import KNOWN_ROLES, FocusItem, NodeSnapshot

_FENCE = re.compile(r"```(?:json)?")


@dataclass(frozen=True)
class SanitizedOrder:
    """Model items that survived validation, and how many were discarded."""

    items: tuple[FocusItem, ...]
    dropped: int = 0


def parse_model_content(content: str) -> dict[str, Any]:
    """Extract the JSON object from a model reply.

    Markdown fences and prose around the object are tolerated.

    Raises:
        ModelResponseError: No JSON object could be recovered.
    """
    cleaned = _FENCE.sub("", content or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            msg = "Model reply contains no JSON object"
            raise ModelResponseError(msg) from None
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as e:
            msg = f"Model reply is not valid JSON: {e}"
            raise ModelResponseError(msg) from e
    if not isinstance(data, dict):
        msg = f"Model reply must be a JSON object, got {type(data).__name__}"
        raise ModelResponseError(msg)
    return data


def annotations_by_frame(
    data: dict[str, Any], frame_ids: Sequence[str]
) -> dict[str, tuple[list[Any], str]]:
    """Group the model's annotations by known frame id.

    Annotations for unknown frames are discarded. When the request had a
    single frame, an annotation without ``frameId`` is bound to it.

    Raises:
        ModelResponseError: The reply has no ``annotations`` list.
    """
    raw = data.get("annotations")
    if raw is None and isinstance(data.get("order"), list):
        raw = [data]
    if not isinstance(raw, list):
        msg = "Model reply has no annotations list"
        raise ModelResponseError(msg)

    known = set(frame_ids)
    out: dict[str, tuple[list[Any], str]] = {}
    for annotation in raw:
        if not isinstance(annotation, dict):
            continue
        frame_id = annotation.get("frameId")
        if not frame_id and len(frame_ids) == 1:
            frame_id = frame_ids[0]
        if frame_id not in known or frame_id in out:
            logger.debug("Discarding model annotation for frame {!r}", frame_id)
            continue
        order = annotation.get("order")
        notes = annotation.get("notes")
        out[frame_id] = (
            order if isinstance(order, list) else [],
            notes if isinstance(notes, str) else "",
        )
    return out


def sanitize_order(
    raw_order: Sequence[Any],
    tree: NodeSnapshot,
    heuristic: Collection[FocusItem] = (),
) -> SanitizedOrder:
    """Keep only model items that reference real, distinct nodes of ``tree``.

    Missing or unknown labels and roles fall back to the heuristic entry for
    the same node, then to safe defaults. Positions always come from the
    tree, never from the model.
    """
    known = tree.ids()
    known.discard(tree.id)
    fallback = {item.id: item for item in heuristic}

    seen: set[str] = set()
    items: list[FocusItem] = []
    dropped = 0
    for raw in raw_order:
        node_id = raw.get("id", raw.get("nodeId")) if isinstance(raw, dict) else None
        if not isinstance(node_id, str) or node_id not in known or node_id in seen:
            dropped += 1
            continue
        seen.add(node_id)
        node = tree.find(node_id)
        assert node is not None
        hint = fallback.get(node_id)

        label = raw.get("label", raw.get("name"))
        if not isinstance(label, str) or not label.strip():
            label = hint.label if hint else label_for(node)

        role = raw.get("role")
        role = role.strip().lower() if isinstance(role, str) else ""
        if role not in KNOWN_ROLES:
            role = hint.role if hint else (node.role or "button")

        items.append(
            FocusItem(
                id=node_id,
                label=label.strip()[: LABEL_LIMIT * 2],
                role=role,
                order=len(items) + 1,
                position=node.geometry,
                source="ai",
            )
        )

    if dropped:
        logger.info("Dropped {} model item(s) not matching the source tree", dropped)
    return SanitizedOrder(items=tuple(items), dropped=dropped)
