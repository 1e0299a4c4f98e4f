"""SQLite schema creation and migration for the local spec archive."""

import sqlite3

from loguru import logger

SCHEMA_VERSION = 2

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS specs (
    frame_id TEXT PRIMARY KEY,
    frame_name TEXT NOT NULL,
    platform TEXT NOT NULL,
    checksum TEXT NOT NULL DEFAULT '',
    payload TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_specs_updated ON specs(updated_at DESC);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes."""
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the stored schema version; None for a database never set up."""
    try:
        value = get_metadata(conn, "schema_version")
    except sqlite3.OperationalError:
        return None
    return int(value) if value is not None else None


def _add_checksum_column(conn: sqlite3.Connection) -> None:
    # Version 1 archives predate server checksums on saved specs.
    conn.execute("ALTER TABLE specs ADD COLUMN checksum TEXT NOT NULL DEFAULT ''")


_MIGRATIONS = {2: _add_checksum_column}


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version.

    Each step in ``_MIGRATIONS`` upgrades from the previous version and is
    committed together with the new version number.
    """
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)
        return
    for target in range(version + 1, SCHEMA_VERSION + 1):
        logger.info("Migrating spec archive to schema version {}", target)
        _MIGRATIONS[target](conn)
        set_metadata(conn, "schema_version", str(target))


def get_metadata(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute("INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)", (key, value))
    conn.commit()
