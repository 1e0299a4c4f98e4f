"""Protocols for the collaborators the core depends on."""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from focus_annotator.models.focus import FocusSequence, Geometry


@runtime_checkable
class HostNodeProtocol(Protocol):
    """A node of the host design document.

    The serializer only relies on this capability set, never on concrete
    host node types.
    """

    id: str
    name: str
    kind: str
    visible: bool
    geometry: Geometry | None
    characters: str | None

    @property
    def children(self) -> Sequence["HostNodeProtocol"]:
        """Child nodes in host order (hidden ones included)."""
        ...

    def get_tag(self, key: str) -> str:
        """Read a per-node string value, empty string if unset."""
        ...

    def set_tag(self, key: str, value: str) -> None:
        """Write a per-node string value."""
        ...


@runtime_checkable
class SpecStoreProtocol(Protocol):
    """Durable storage for curated focus order specs."""

    def load(self, frame_id: str) -> FocusSequence | None:
        """Return the saved spec for a frame, or None."""
        ...

    def save(self, sequence: FocusSequence) -> FocusSequence:
        """Replace the saved spec for ``sequence.frame_id``; return what was written."""
        ...


@runtime_checkable
class ModelClientProtocol(Protocol):
    """Client for the external annotation model."""

    model: str

    @property
    def configured(self) -> bool:
        """Whether credentials for the model are present."""
        ...

    def annotate(
        self,
        *,
        platform: str,
        frames: list[dict[str, Any]],
        image: str | None = None,
        prompt: str | None = None,
    ) -> str:
        """Send one annotation request and return the raw message content."""
        ...


@runtime_checkable
class AnnotatorApiProtocol(Protocol):
    """Client for the annotation service."""

    def warm_up(self) -> bool:
        """Probe the service to hide cold-start latency. Never raises."""
        ...

    def annotate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST an annotate request and return the JSON response."""
        ...
