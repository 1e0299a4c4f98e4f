"""End-to-end client pipeline: serialize, ask the service, merge, persist."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

from focus_annotator.core.heuristics.ordering import heuristic_order, validate_sequence
from focus_annotator.core.merge.merger import carry_forward_manual, merge
from focus_annotator.core.protocol.messages import build_request
from focus_annotator.core.protocol.sanitize import sanitize_order
from focus_annotator.core.selection import SelectionContext
from focus_annotator.core.tree.serializer import (
    SerializeOptions,
    SerializeStats,
    normalize_platform,
    serialize_with_stats,
)
from focus_annotator.errors import AnnotatorServiceError
from focus_annotator.models.focus import FocusItem, FocusSequence, NodeSnapshot, ValidationReport
from focus_annotator.protocols import AnnotatorApiProtocol, HostNodeProtocol, SpecStoreProtocol

ImageExporter = Callable[[HostNodeProtocol], str | None]

NOTICE_TRUNCATED = "Selection is large; only part of it was analyzed."
NOTICE_OFFLINE = "Annotation service unavailable; showing the local reading order."
NOTICE_STALE = "Service answered for a different frame; showing the local reading order."
NOTICE_NOT_SAVED = "Focus order could not be saved."


@dataclass(frozen=True)
class ProposalResult:
    """What one proposal run produced, and whether it should be shown."""

    sequence: FocusSequence
    applied: bool
    source: str
    report: ValidationReport
    stats: SerializeStats
    notices: tuple[str, ...] = ()


@dataclass(frozen=True)
class _ServiceAnswer:
    items: list[FocusItem]
    source: str
    notes: str
    checksum: str


def _export_image(frame: HostNodeProtocol, exporter: ImageExporter | None) -> str | None:
    if exporter is None:
        return None
    try:
        return exporter(frame) or None
    except Exception:
        logger.warning("Image export failed for frame {!r}; continuing without it", frame.id)
        return None


def _read_answer(
    response: dict[str, Any], tree: NodeSnapshot, heuristic: Sequence[FocusItem]
) -> _ServiceAnswer | None:
    """Pick this frame's annotation out of a response, validated against the tree."""
    for annotation in response.get("annotations") or []:
        if not isinstance(annotation, dict) or annotation.get("frameId") != tree.id:
            continue
        source = annotation.get("source")
        source = source if source in ("ai", "heuristic") else "ai"
        raw_order = annotation.get("order")
        if not isinstance(raw_order, list):
            raw_order = []
        sanitized = sanitize_order(raw_order, tree, heuristic)
        items = [replace(item, source=source) for item in sanitized.items]
        notes = annotation.get("notes")
        return _ServiceAnswer(
            items=items,
            source=source,
            notes=notes if isinstance(notes, str) else "",
            checksum=str(response.get("checksum") or ""),
        )
    return None


def _load_previous(store: SpecStoreProtocol | None, frame_id: str) -> FocusSequence | None:
    if store is None:
        return None
    try:
        return store.load(frame_id)
    except Exception:
        logger.warning("Could not load saved focus order for {!r}", frame_id, exc_info=True)
        return None


def save_sequence(
    store: SpecStoreProtocol | None, sequence: FocusSequence
) -> tuple[FocusSequence, bool]:
    """Persist a sequence; failures are logged and reported, never raised."""
    if store is None:
        return sequence, False
    try:
        return store.save(sequence), True
    except Exception:
        logger.exception("Saving focus order for frame {!r} failed", sequence.frame_id)
        return sequence, False


def save_curated(
    store: SpecStoreProtocol | None, sequence: FocusSequence, items: Sequence[FocusItem]
) -> tuple[FocusSequence, bool]:
    """Replace the items of a shown sequence with a curated list and persist it."""
    return save_sequence(store, replace(sequence, items=tuple(items)))


def propose_focus_order(
    frame: HostNodeProtocol,
    platform: str,
    api: AnnotatorApiProtocol | None,
    *,
    store: SpecStoreProtocol | None = None,
    context: SelectionContext | None = None,
    prompt: str | None = None,
    exporter: ImageExporter | None = None,
    options: SerializeOptions | None = None,
) -> ProposalResult:
    """Propose a focus order for ``frame``.

    The service is optional: with ``api=None``, or when it fails, the local
    heuristic order is used. Manual items saved earlier for the same frame
    are carried forward and take precedence over everything else.

    When ``context`` is given, the result is applied and persisted only if
    ``frame`` is still the current selection; ``applied`` is False for a
    stale or unchanged result.
    """
    platform = normalize_platform(platform)
    tree, stats = serialize_with_stats(frame, platform, options)
    heuristic = heuristic_order(tree)
    notices: list[str] = []
    if stats.truncated:
        notices.append(NOTICE_TRUNCATED)

    request = build_request(tree, platform, prompt, image=_export_image(frame, exporter))

    answer: _ServiceAnswer | None = None
    if api is not None:
        api.warm_up()
        try:
            response = api.annotate(request.to_wire())
        except AnnotatorServiceError as e:
            logger.warning("Falling back to local heuristics: {}", e)
            notices.append(NOTICE_OFFLINE)
        else:
            message = response.get("message")
            if isinstance(message, str) and message:
                notices.append(message)
            answer = _read_answer(response, tree, heuristic)
            if answer is None:
                logger.warning("Response has no annotation for frame {!r}", tree.id)
                notices.append(NOTICE_STALE)

    previous = _load_previous(store, tree.id)
    manual = carry_forward_manual(previous.items, tree) if previous is not None else []

    if answer is not None and answer.source == "ai":
        items = merge(heuristic, answer.items, manual)
    elif answer is not None and answer.items:
        items = merge(answer.items, None, manual)
    else:
        items = merge(heuristic, None, manual)
    source = answer.source if answer is not None else "heuristic"

    sequence = FocusSequence(
        frame_id=tree.id,
        frame_name=tree.name,
        platform=platform,
        items=tuple(items),
        checksum=answer.checksum if answer is not None and answer.checksum else request.checksum,
        notes=answer.notes if answer is not None else "",
        created_at=previous.created_at if previous is not None else 0,
    )
    report = validate_sequence(items, expected_interactive=bool(heuristic))

    applied = True
    if context is not None:
        applied = context.should_apply(tree.id, items)
        if not context.is_current(tree.id):
            logger.info("Selection changed; discarding result for frame {!r}", tree.id)
            return ProposalResult(sequence, False, source, report, stats, tuple(notices))

    if applied:
        sequence, saved = save_sequence(store, sequence)
        if store is not None and not saved:
            notices.append(NOTICE_NOT_SAVED)
        if context is not None:
            context.mark_applied(tree.id, items)

    return ProposalResult(sequence, applied, source, report, stats, tuple(notices))
