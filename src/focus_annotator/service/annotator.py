"""Server-side annotate pipeline: validate, cache, fast paths, model, fallback."""

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger

from focus_annotator.config import (
    DEFAULT_NODE_BUDGET,
    EMPTY_STATE_MESSAGE,
    MAX_IMAGE_BYTES,
    MAX_REQUEST_DEPTH,
    MAX_REQUEST_NODES,
    TRIVIAL_FOCUSABLE_LIMIT,
    VERSION,
    ServiceSettings,
)
from focus_annotator.core.cache import ResultCache, cache_key
from focus_annotator.core.heuristics.ordering import heuristic_order, validate_sequence
from focus_annotator.core.protocol.messages import AnnotateRequest, parse_request
from focus_annotator.core.protocol.sanitize import (
    SanitizedOrder,
    annotations_by_frame,
    parse_model_content,
    sanitize_order,
)
from focus_annotator.core.retry import RetryPolicy, call_with_retry
from focus_annotator.core.tree.normalize import (
    count_focusables,
    count_nodes,
    prune_nodes,
    tree_depth,
)
from focus_annotator.errors import BadRequestError, ModelError, PayloadTooLargeError
from focus_annotator.models.focus import FocusItem, NodeSnapshot
from focus_annotator.protocols import ModelClientProtocol

NOTE_TRIVIAL = "Trivial selection; ordered without the model."
NOTE_NO_MODEL = "Model not configured; heuristic reading order used."
NOTE_FALLBACK = "Model unavailable or unusable; heuristic reading order used."


@dataclass(frozen=True)
class AnnotateResult:
    """HTTP-agnostic outcome of one annotate request."""

    status: int
    body: dict[str, Any]


def _annotation(
    frame_id: str, items: Sequence[FocusItem], notes: str, source: str
) -> dict[str, Any]:
    return {
        "frameId": frame_id,
        "order": [item.to_wire() for item in items],
        "notes": notes,
        "source": source,
    }


def _heuristic_notes(base: str, items: Sequence[FocusItem]) -> str:
    report = validate_sequence(items, expected_interactive=bool(items))
    if report.is_valid:
        return base
    return base + " Check: " + "; ".join(report.issues) + "."


class AnnotationService:
    """Handles annotate requests; the model is optional and never required.

    Steps run strictly in order: validate, checksum, cache lookup, empty
    fast path, trivial fast path, model call with sanitization and
    heuristic fallback, cache store.
    """

    def __init__(
        self,
        *,
        cache: ResultCache | None = None,
        model: ModelClientProtocol | None = None,
        retry: RetryPolicy | None = None,
        node_budget: int = DEFAULT_NODE_BUDGET,
        max_request_nodes: int = MAX_REQUEST_NODES,
        max_request_depth: int = MAX_REQUEST_DEPTH,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache if cache is not None else ResultCache()
        self.model = model
        self.retry = retry or RetryPolicy()
        self.node_budget = node_budget
        self.max_request_nodes = max_request_nodes
        self.max_request_depth = max_request_depth
        self.max_image_bytes = max_image_bytes
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> "AnnotationService":
        from focus_annotator.service.model_client import OpenAIModelClient

        model = OpenAIModelClient(
            api_key=settings.api_key,
            model=settings.model,
            url=settings.model_url,
            timeout=settings.model_timeout,
        )
        return cls(
            cache=ResultCache(ttl=settings.cache_ttl),
            model=model,
            node_budget=settings.node_budget,
        )

    @property
    def model_ready(self) -> bool:
        return self.model is not None and self.model.configured

    def health(self) -> dict[str, Any]:
        return {
            "ok": True,
            "status": "healthy",
            "model": self.model.model if self.model is not None else None,
            "hasKey": self.model_ready,
            "version": VERSION,
        }

    def handle(self, payload: Any) -> AnnotateResult:
        """Answer one annotate request.

        Returns 400 with a reason code for invalid input and 413 for
        oversized input. Model failures never surface; they fall back to
        the heuristic order.
        """
        started = time.monotonic()
        try:
            request = parse_request(payload)
            self._check_limits(request)
        except BadRequestError as e:
            logger.info("Rejected annotate request: {} ({})", e.reason, e)
            return AnnotateResult(400, {"ok": False, "error": "bad_request", "reason": e.reason})
        except PayloadTooLargeError as e:
            logger.info("Rejected oversized annotate request: {}", e)
            return AnnotateResult(
                413, {"ok": False, "error": "payload_too_large", "detail": str(e)}
            )

        checksum = request.checksum
        key = cache_key(request.platform, checksum, request.prompt)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for {}", key)
            return AnnotateResult(200, {**cached, "cache": True})

        body = {"ok": True, "checksum": checksum, **self._annotate(request)}
        self.cache.set(key, body)
        logger.info(
            "annotate platform={} frames={} checksum={} ms={:.0f}",
            request.platform,
            len(request.frames),
            checksum[:12],
            (time.monotonic() - started) * 1000,
        )
        return AnnotateResult(200, {**body, "cache": False})

    def _check_limits(self, request: AnnotateRequest) -> None:
        depth = max(tree_depth(frame.children) for frame in request.frames)
        if depth > self.max_request_depth:
            msg = f"nesting depth {depth} exceeds the limit of {self.max_request_depth}"
            raise PayloadTooLargeError(msg)
        total = sum(count_nodes(frame.children) for frame in request.frames)
        if total > self.max_request_nodes:
            msg = f"{total} nodes exceeds the limit of {self.max_request_nodes}"
            raise PayloadTooLargeError(msg)
        if request.image and len(request.image) > self.max_image_bytes:
            msg = f"image of {len(request.image)} bytes exceeds the limit of {self.max_image_bytes}"
            raise PayloadTooLargeError(msg)

    def _annotate(self, request: AnnotateRequest) -> dict[str, Any]:
        frames = request.frames
        trees = [frame.snapshot() for frame in frames]
        focusables = sum(count_focusables(frame.children) for frame in frames)

        if focusables == 0:
            return {
                "message": EMPTY_STATE_MESSAGE,
                "annotations": [
                    _annotation(frame.id, [], EMPTY_STATE_MESSAGE, "heuristic") for frame in frames
                ],
            }

        heuristics = {frame.id: heuristic_order(tree) for frame, tree in zip(frames, trees)}

        if focusables <= TRIVIAL_FOCUSABLE_LIMIT or not self.model_ready:
            base = NOTE_TRIVIAL if focusables <= TRIVIAL_FOCUSABLE_LIMIT else NOTE_NO_MODEL
            return {
                "annotations": [
                    _annotation(
                        frame.id,
                        heuristics[frame.id],
                        _heuristic_notes(base, heuristics[frame.id]),
                        "heuristic",
                    )
                    for frame in frames
                ]
            }

        suggested = self._ask_model(request, trees, heuristics)
        annotations = []
        for frame in frames:
            got = suggested.get(frame.id)
            if got is not None and got[0].items:
                sanitized, notes = got
                annotations.append(_annotation(frame.id, sanitized.items, notes, "ai"))
            else:
                items = heuristics[frame.id]
                notes = _heuristic_notes(NOTE_FALLBACK, items)
                annotations.append(_annotation(frame.id, items, notes, "heuristic"))
        return {"annotations": annotations}

    def _ask_model(
        self,
        request: AnnotateRequest,
        trees: Sequence[NodeSnapshot],
        heuristics: dict[str, list[FocusItem]],
    ) -> dict[str, tuple[SanitizedOrder, str]]:
        """Call the model once and sanitize its answer per frame.

        Returns an empty dict when the call fails or the reply is unusable.
        """
        assert self.model is not None
        model = self.model
        pruned = [
            {**frame.to_wire(), "children": prune_nodes(frame.children, self.node_budget)}
            for frame in request.frames
        ]
        try:
            content = call_with_retry(
                lambda: model.annotate(
                    platform=request.platform,
                    frames=pruned,
                    image=request.image,
                    prompt=request.prompt,
                ),
                self.retry,
                sleep=self._sleep,
                description="Model call",
            )
            grouped = annotations_by_frame(
                parse_model_content(content), [frame.id for frame in request.frames]
            )
        except (ModelError, requests.RequestException) as e:
            logger.warning("Falling back to heuristic order: {}", e)
            return {}

        out: dict[str, tuple[SanitizedOrder, str]] = {}
        for frame, tree in zip(request.frames, trees):
            if frame.id not in grouped:
                continue
            raw_order, notes = grouped[frame.id]
            out[frame.id] = (sanitize_order(raw_order, tree, heuristics[frame.id]), notes)
        return out
