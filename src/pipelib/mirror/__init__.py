"""Relational mirror of the pipefile library."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Sequence

from .db import SCHEMA_VERSION, create_schema, open_db, transaction
from .errors import MirrorError
from .models import DESCRIPTIVE_FIELDS, PipefileRecord
from .paths import PathIndex, normalize_directory

_COLUMNS = (
    "directory_id",
    "absolute_path",
    "last_modified",
    *DESCRIPTIVE_FIELDS,
    "access",
)
_INSERT_SQL = (
    f"INSERT INTO pipefile ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)})"
)


def _row_to_record(row: sqlite3.Row) -> PipefileRecord:
    return PipefileRecord(**{key: row[key] for key in row.keys()})


def _record_values(record: PipefileRecord) -> tuple[Any, ...]:
    return tuple(getattr(record, column) for column in _COLUMNS)


class MirrorStore:
    """Read and write pipefile rows.

    Every public mutation runs in its own transaction; ``relocate`` groups the
    delete-then-insert of a move into one.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @classmethod
    def open(cls, db_path: Path | str, *, busy_timeout_ms: int = 5_000) -> "MirrorStore":
        """Open the database at ``db_path`` and ensure the schema exists."""
        conn = open_db(db_path, busy_timeout_ms=busy_timeout_ms)
        create_schema(conn)
        return cls(conn)

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the underlying connection."""
        return self._conn

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def get(self, absolute_path: str | Path) -> PipefileRecord | None:
        """Return the row keyed by ``absolute_path`` if present."""
        try:
            row = self._conn.execute(
                "SELECT * FROM pipefile WHERE absolute_path = ?", (str(absolute_path),)
            ).fetchone()
        except sqlite3.Error as exc:
            raise MirrorError(str(exc)) from exc
        return None if row is None else _row_to_record(row)

    def insert(self, record: PipefileRecord) -> None:
        """Insert a new row; fails if the path is already mirrored."""
        with transaction(self._conn) as conn:
            conn.execute(_INSERT_SQL, _record_values(record))

    def update_descriptive(self, record: PipefileRecord) -> None:
        """Refresh descriptive fields and ``last_modified`` for an existing row.

        ``directory_id`` and ``access`` are left as stored.
        """
        assignments = ", ".join(f"{field} = ?" for field in (*DESCRIPTIVE_FIELDS, "last_modified"))
        values = [getattr(record, field) for field in DESCRIPTIVE_FIELDS]
        values.extend([record.last_modified, record.absolute_path])
        with transaction(self._conn) as conn:
            conn.execute(f"UPDATE pipefile SET {assignments} WHERE absolute_path = ?", values)

    def delete(self, absolute_path: str | Path, directory_id: int | None = None) -> bool:
        """Delete the row for ``absolute_path``, optionally scoped to a directory id.

        Returns:
            bool: True when a row was removed.
        """
        sql = "DELETE FROM pipefile WHERE absolute_path = ?"
        params: list[Any] = [str(absolute_path)]
        if directory_id is not None:
            sql += " AND directory_id = ?"
            params.append(directory_id)
        with transaction(self._conn) as conn:
            cursor = conn.execute(sql, params)
        return cursor.rowcount > 0

    def delete_many(self, paths: Iterable[str]) -> int:
        """Delete rows for every path in ``paths`` and return the count removed."""
        removed = 0
        with transaction(self._conn) as conn:
            for path in paths:
                removed += conn.execute(
                    "DELETE FROM pipefile WHERE absolute_path = ?", (path,)
                ).rowcount
        return removed

    def relocate(self, old: PipefileRecord | None, new: PipefileRecord) -> None:
        """Replace ``old`` with ``new`` in a single transaction.

        Any stale row already keyed by the new path is dropped first so the
        destination ends up with exactly one row.
        """
        with transaction(self._conn) as conn:
            conn.execute("DELETE FROM pipefile WHERE absolute_path = ?", (new.absolute_path,))
            conn.execute(_INSERT_SQL, _record_values(new))
            if old is not None and old.absolute_path != new.absolute_path:
                conn.execute(
                    "DELETE FROM pipefile WHERE absolute_path = ? AND directory_id = ?",
                    (old.absolute_path, old.directory_id),
                )

    def put(self, record: PipefileRecord) -> None:
        """Insert ``record``, replacing any row already keyed by its path."""
        self.relocate(None, record)

    def select_under(
        self,
        directory_path: str | Path,
        *,
        where: str = "",
        params: Sequence[Any] = (),
    ) -> list[PipefileRecord]:
        """Return rows for pipefiles located anywhere beneath ``directory_path``.

        The bound is the file's own path, so a row is found no matter which
        directory id it was filed under.

        Args:
            directory_path: Absolute directory path bounding the subtree.
            where: Optional extra SQL predicate over ``pipefile`` columns.
            params: Parameters bound to ``where`` placeholders.

        Returns:
            list[PipefileRecord]: Matching rows ordered by path.
        """
        base = normalize_directory(directory_path)
        prefix = base if base.endswith(os.sep) else base + os.sep
        sql = "SELECT * FROM pipefile WHERE substr(absolute_path, 1, ?) = ?"
        bound: list[Any] = [len(prefix), prefix]
        if where:
            sql += f" AND ({where})"
            bound.extend(params)
        sql += " ORDER BY absolute_path"
        try:
            rows = self._conn.execute(sql, bound).fetchall()
        except sqlite3.Error as exc:
            raise MirrorError(str(exc)) from exc
        return [_row_to_record(row) for row in rows]


__all__ = [
    "MirrorStore",
    "MirrorError",
    "PathIndex",
    "PipefileRecord",
    "DESCRIPTIVE_FIELDS",
    "SCHEMA_VERSION",
    "normalize_directory",
    "open_db",
    "create_schema",
]
