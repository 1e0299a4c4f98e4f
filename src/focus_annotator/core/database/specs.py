"""Durable storage for curated focus order specs (full-replace writes)."""

import json
import sqlite3
import time
from collections.abc import Callable
from dataclasses import replace

from loguru import logger

from focus_annotator.config import TAG_FOCUS_ORDER
from focus_annotator.core.database.schema import get_metadata, set_metadata
from focus_annotator.models.focus import FocusSequence
from focus_annotator.protocols import HostNodeProtocol


def now_ms() -> int:
    return int(time.time() * 1000)


class SqliteSpecStore:
    """Spec archive in a local SQLite database, one row per frame."""

    def __init__(self, conn: sqlite3.Connection, *, clock: Callable[[], int] = now_ms) -> None:
        self.conn = conn
        self._clock = clock

    def load(self, frame_id: str) -> FocusSequence | None:
        row = self.conn.execute(
            "SELECT payload FROM specs WHERE frame_id = ?", (frame_id,)
        ).fetchone()
        if row is None:
            return None
        return FocusSequence.from_dict(json.loads(row[0]))

    def save(self, sequence: FocusSequence) -> FocusSequence:
        """Replace the stored spec, keeping the original creation time."""
        previous = self.load(sequence.frame_id)
        if previous is not None and not sequence.created_at:
            sequence = replace(sequence, created_at=previous.created_at)
        stamped = sequence.stamped(self._clock())
        self.conn.execute(
            """INSERT OR REPLACE INTO specs
               (frame_id, frame_name, platform, checksum, payload, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                stamped.frame_id,
                stamped.frame_name,
                stamped.platform,
                stamped.checksum,
                json.dumps(stamped.to_dict(), ensure_ascii=False),
                stamped.created_at,
                stamped.updated_at,
            ),
        )
        self.conn.commit()
        set_metadata(self.conn, "last_frame_id", stamped.frame_id)
        logger.debug("Saved spec for frame {} ({} items)", stamped.frame_id, len(stamped.items))
        return stamped

    def last_frame_id(self) -> str | None:
        return get_metadata(self.conn, "last_frame_id")

    def list_specs(self) -> list[tuple[str, str, str, int]]:
        """Return ``(frame_id, frame_name, platform, updated_at)`` rows, newest first."""
        rows = self.conn.execute(
            "SELECT frame_id, frame_name, platform, updated_at FROM specs ORDER BY updated_at DESC"
        ).fetchall()
        return [tuple(r) for r in rows]  # type: ignore[misc]


class TagSpecStore:
    """Spec stored on the frame itself, in the host's per-node storage."""

    def __init__(self, frame: HostNodeProtocol, *, clock: Callable[[], int] = now_ms) -> None:
        self.frame = frame
        self._clock = clock

    def load(self, frame_id: str) -> FocusSequence | None:
        if frame_id != self.frame.id:
            return None
        raw = self.frame.get_tag(TAG_FOCUS_ORDER)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable saved spec on frame {}", frame_id)
            return None
        if not isinstance(data, dict):
            return None
        return FocusSequence.from_dict(data)

    def save(self, sequence: FocusSequence) -> FocusSequence:
        stamped = sequence.stamped(self._clock())
        self.frame.set_tag(TAG_FOCUS_ORDER, json.dumps(stamped.to_dict(), ensure_ascii=False))
        return stamped
