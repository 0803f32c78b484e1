"""Removing pipefiles from disk and mirror."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from pipelib.mirror import MirrorStore

from .models import RemovalOutcome

LOGGER = logging.getLogger(__name__)


class Remover:
    """Delete pipefiles and their mirror rows."""

    def __init__(self, store: MirrorStore) -> None:
        self.store = store

    def remove(self, path: str | Path) -> RemovalOutcome:
        """Delete the file at ``path`` and its mirror row.

        A missing file still clears any stale row for the path. When the file
        cannot be deleted its row is kept.

        Raises:
            MirrorError: If the mirror cannot be updated.
        """
        absolute = os.path.normpath(os.path.abspath(os.path.expanduser(str(path))))
        target = Path(absolute)

        if not target.is_file():
            row_removed = self.store.delete(absolute)
            return RemovalOutcome(path=absolute, status="missing", mirror_row_removed=row_removed)

        try:
            target.unlink()
        except OSError as exc:
            LOGGER.warning("Unable to delete %s: %s", absolute, exc)
            return RemovalOutcome(path=absolute, status="failed", error=str(exc))

        row_removed = self.store.delete(absolute)
        LOGGER.info("Removed %s", absolute)
        return RemovalOutcome(path=absolute, status="removed", mirror_row_removed=row_removed)

    def remove_files(self, paths: Iterable[str | Path]) -> list[RemovalOutcome]:
        """Remove each path independently and return one outcome per path."""
        return [self.remove(path) for path in paths]


__all__ = ["Remover"]
