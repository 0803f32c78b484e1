"""SQLite database layer: connection management, schema, meta helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import MirrorError

# Schema version, increment on breaking changes
SCHEMA_VERSION = "1"

_SCHEMA_SQL = """\
-- Interned directory paths
CREATE TABLE IF NOT EXISTS directory (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    absolute_path TEXT NOT NULL UNIQUE
);

-- Mirrored pipefiles
CREATE TABLE IF NOT EXISTS pipefile (
    directory_id  INTEGER NOT NULL REFERENCES directory(id),
    absolute_path TEXT NOT NULL UNIQUE,
    last_modified INTEGER NOT NULL,
    name          TEXT NOT NULL DEFAULT '',
    type          TEXT NOT NULL DEFAULT '',
    package_name  TEXT NOT NULL DEFAULT '',
    description   TEXT NOT NULL DEFAULT '',
    tags          TEXT NOT NULL DEFAULT '',
    location      TEXT NOT NULL DEFAULT '',
    uri           TEXT NOT NULL DEFAULT '',
    access        TEXT NOT NULL DEFAULT ''
);

-- Index metadata
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_pipefile_directory ON pipefile(directory_id);
"""


def open_db(db_path: Path | str, *, busy_timeout_ms: int = 5_000) -> sqlite3.Connection:
    """Open (or create) the mirror database with proper PRAGMAs.

    Sets WAL journal mode (persistent per-file), enables foreign keys
    (per-connection) and applies the busy timeout. ``":memory:"`` is accepted
    for throwaway mirrors.

    Returns a connection with ``sqlite3.Row`` row factory.
    """
    target = str(db_path)
    if target != ":memory:":
        Path(target).expanduser().parent.mkdir(parents=True, exist_ok=True)
        target = str(Path(target).expanduser())
    try:
        conn = sqlite3.connect(target)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    except sqlite3.Error as exc:
        raise MirrorError(f"Unable to open mirror database {target}: {exc}") from exc
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they don't exist.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    try:
        conn.executescript(_SCHEMA_SQL)
    except sqlite3.Error as exc:
        raise MirrorError(f"Unable to create mirror schema: {exc}") from exc
    if get_meta(conn, "schema_version") is None:
        set_meta(conn, "schema_version", SCHEMA_VERSION)


def get_meta(conn: sqlite3.Connection, key: str, default: str | None = None) -> str | None:
    """Read a value from the ``meta`` table.

    Returns *default* (``None``) if the key doesn't exist.
    """
    try:
        row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
    except sqlite3.Error as exc:
        raise MirrorError(str(exc)) from exc
    if row is None:
        return default
    return str(row[0])


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Insert or update a key in the ``meta`` table."""
    with transaction(conn):
        conn.execute(
            "INSERT INTO meta (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Commit on success, roll back and raise ``MirrorError`` on database errors."""
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise MirrorError(str(exc)) from exc
    except BaseException:
        conn.rollback()
        raise
