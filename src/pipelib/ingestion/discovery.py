"""Pipefile discovery."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterator

LOGGER = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, OSError], None]


class PipefileScanner:
    """Enumerate pipefiles beneath a root directory, depth-first."""

    def __init__(
        self,
        *,
        suffix: str = ".pipe",
        follow_symlinks: bool = False,
        include_hidden: bool = False,
    ) -> None:
        self.suffix = suffix
        self.follow_symlinks = follow_symlinks
        self.include_hidden = include_hidden

    def scan(self, root: Path, on_error: ErrorCallback | None = None) -> Iterator[Path]:
        """Yield absolute paths of pipefiles found under ``root``.

        Entries are visited in name order. Directories that cannot be listed
        are reported through ``on_error`` and skipped. Each call starts a fresh
        walk, so the result can be consumed again by scanning again.

        Args:
            root: Directory to walk; a single pipefile path yields itself.
            on_error: Optional callback receiving unreadable paths.
        """
        root = Path(os.path.abspath(os.path.expanduser(str(root))))
        if root.is_file():
            if self._matches(root.name):
                yield root
            return
        if not root.is_dir():
            return

        visited: set[tuple[int, int]] = set()
        yield from self._walk(root, visited, on_error)

    def _walk(
        self,
        directory: Path,
        visited: set[tuple[int, int]],
        on_error: ErrorCallback | None,
    ) -> Iterator[Path]:
        try:
            stat = directory.stat()
            identity = (stat.st_dev, stat.st_ino)
            if identity in visited:
                LOGGER.debug("Skipping already visited directory %s", directory)
                return
            visited.add(identity)
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            LOGGER.warning("Skipping unreadable directory %s: %s", directory, exc)
            if on_error is not None:
                on_error(directory, exc)
            return

        for entry in entries:
            if not self.include_hidden and entry.name.startswith("."):
                continue
            path = Path(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                is_file = entry.is_file(follow_symlinks=True)
            except OSError as exc:
                if on_error is not None:
                    on_error(path, exc)
                continue
            if is_dir:
                yield from self._walk(path, visited, on_error)
            elif is_file and self._matches(entry.name):
                yield path

    def _matches(self, name: str) -> bool:
        return name.endswith(self.suffix)


__all__ = ["PipefileScanner", "ErrorCallback"]
