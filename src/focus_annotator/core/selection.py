"""Per-selection state that keeps the UI from applying stale or unchanged results."""

import hashlib
import json
from collections.abc import Sequence
from dataclasses import dataclass

from focus_annotator.models.focus import FocusItem


def order_checksum(items: Sequence[FocusItem]) -> str:
    """Checksum of what the user sees: ids and labels in order."""
    payload = json.dumps([[item.id, item.label] for item in items], separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass
class SelectionContext:
    """What is currently selected and what was last shown for it.

    One instance per UI session, passed explicitly to whoever applies
    results.
    """

    selection_id: str | None = None
    last_checksum: str | None = None

    def select(self, selection_id: str | None) -> None:
        """Switch selection; the re-render guard starts fresh."""
        if selection_id != self.selection_id:
            self.selection_id = selection_id
            self.last_checksum = None

    def is_current(self, frame_id: str) -> bool:
        return self.selection_id is not None and frame_id == self.selection_id

    def should_apply(self, frame_id: str, items: Sequence[FocusItem]) -> bool:
        """True if the result belongs to the current selection and differs from what is shown."""
        if not self.is_current(frame_id):
            return False
        return order_checksum(items) != self.last_checksum

    def mark_applied(self, frame_id: str, items: Sequence[FocusItem]) -> None:
        if self.is_current(frame_id):
            self.last_checksum = order_checksum(items)

    def clear(self) -> None:
        self.last_checksum = None
