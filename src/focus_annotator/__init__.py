"""Focus order proposals for UI frames."""

from focus_annotator.client.api import AnnotatorApi
from focus_annotator.client.session import ProposalResult, propose_focus_order
from focus_annotator.core.heuristics.ordering import (
    compute_order,
    extract_candidates,
    validate_sequence,
)
from focus_annotator.core.merge.merger import merge
from focus_annotator.core.protocol.messages import build_request
from focus_annotator.core.tree.serializer import serialize
from focus_annotator.models.focus import FocusItem, FocusSequence, NodeSnapshot
from focus_annotator.protocols import HostNodeProtocol, SpecStoreProtocol
from focus_annotator.service.annotator import AnnotationService

__all__ = [
    "AnnotationService",
    "AnnotatorApi",
    "FocusItem",
    "FocusSequence",
    "HostNodeProtocol",
    "NodeSnapshot",
    "ProposalResult",
    "SpecStoreProtocol",
    "build_request",
    "compute_order",
    "extract_candidates",
    "merge",
    "propose_focus_order",
    "serialize",
    "validate_sequence",
]
