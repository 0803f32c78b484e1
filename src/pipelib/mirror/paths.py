"""Directory path interning."""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from .db import transaction
from .errors import MirrorError

LOGGER = logging.getLogger(__name__)


def normalize_directory(path: str | Path) -> str:
    """Return the absolute, normalized string form used as a directory key."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(str(path))))


class PathIndex:
    """Map absolute directory paths to stable integer ids.

    Ids come from an ``AUTOINCREMENT`` key so they are never reused, and the
    unique constraint on ``absolute_path`` makes concurrent first sightings
    converge on a single row.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def resolve(self, absolute_path: str | Path) -> int:
        """Return the id for ``absolute_path``, creating the entry on first sight."""
        key = normalize_directory(absolute_path)
        existing = self.lookup(key)
        if existing is not None:
            return existing

        with transaction(self._conn) as conn:
            conn.execute(
                "INSERT INTO directory (absolute_path) VALUES (?) "
                "ON CONFLICT(absolute_path) DO NOTHING",
                (key,),
            )
        created = self.lookup(key)
        if created is None:
            raise MirrorError(f"Directory {key} vanished immediately after insert.")
        LOGGER.debug("Interned directory %s as id %s", key, created)
        return created

    def lookup(self, absolute_path: str | Path) -> int | None:
        """Return the id for ``absolute_path`` without creating it."""
        key = normalize_directory(absolute_path)
        try:
            row = self._conn.execute(
                "SELECT id FROM directory WHERE absolute_path = ?", (key,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise MirrorError(str(exc)) from exc
        return None if row is None else int(row[0])

    def path_for(self, directory_id: int) -> str | None:
        """Return the absolute path interned under ``directory_id``."""
        try:
            row = self._conn.execute(
                "SELECT absolute_path FROM directory WHERE id = ?", (directory_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise MirrorError(str(exc)) from exc
        return None if row is None else str(row[0])


__all__ = ["PathIndex", "normalize_directory"]
