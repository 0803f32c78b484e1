"""Filesystem to mirror reconciliation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from pipelib.errors import RootNotFoundError
from pipelib.mirror import MirrorStore, PathIndex, PipefileRecord

from .discovery import PipefileScanner
from .errors import ParseError
from .parser import MetadataParser

LOGGER = logging.getLogger(__name__)


class SyncReport(BaseModel):
    """Outcome of one reconciliation pass.

    Attributes:
        root: Absolute path of the reconciled root.
        directory_id: Mirror id of the root directory.
        inserted: Paths mirrored for the first time.
        updated: Paths whose rows were refreshed after a timestamp change.
        unchanged: Paths whose rows already matched the filesystem.
        pruned: Paths whose rows were dropped because the file disappeared.
        errors: Messages for files or directories that could not be processed.
    """

    root: str
    directory_id: int
    inserted: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)
    pruned: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        """Return per-category totals."""
        return {
            "inserted": len(self.inserted),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "pruned": len(self.pruned),
            "errors": len(self.errors),
        }


class Reconciler:
    """Keep mirror rows in step with the pipefiles found under a root.

    A file is re-parsed only when its filesystem mtime differs from the
    mirrored value; equal timestamps short-circuit without touching the file.
    """

    def __init__(
        self,
        store: MirrorStore,
        paths: PathIndex,
        scanner: PipefileScanner,
        parser: MetadataParser,
        *,
        prune_missing: bool = True,
    ) -> None:
        self.store = store
        self.paths = paths
        self.scanner = scanner
        self.parser = parser
        self.prune_missing = prune_missing

    def sync(self, root: Path) -> SyncReport:
        """Reconcile the mirror with the pipefiles beneath ``root``.

        Raises:
            RootNotFoundError: If ``root`` is not an existing directory.
            MirrorError: If the mirror cannot be read or written.
        """
        root = Path(os.path.abspath(os.path.expanduser(str(root))))
        if not root.is_dir():
            raise RootNotFoundError(f"Library root not found: {root}")

        directory_id = self.paths.resolve(root)
        report = SyncReport(root=str(root), directory_id=directory_id)

        def _on_error(path: Path, exc: OSError) -> None:
            report.errors.append(f"{path}: {exc.strerror or exc}")

        for path in self.scanner.scan(root, on_error=_on_error):
            self._reconcile_file(path, directory_id, report)

        if self.prune_missing:
            self._prune(root, report)

        LOGGER.info("Reconciled %s: %s", root, report.counts)
        return report

    def _reconcile_file(self, path: Path, directory_id: int, report: SyncReport) -> None:
        absolute = str(path)
        try:
            mtime = path.stat().st_mtime_ns
        except OSError as exc:
            report.errors.append(f"{absolute}: {exc.strerror or exc}")
            return

        existing = self.store.get(absolute)
        if existing is not None and existing.last_modified == mtime:
            report.unchanged.append(absolute)
            return

        try:
            metadata = self.parser.parse(path)
        except ParseError as exc:
            LOGGER.warning("Skipping %s: %s", absolute, exc)
            report.errors.append(str(exc))
            return

        record = PipefileRecord(
            absolute_path=absolute,
            directory_id=directory_id if existing is None else existing.directory_id,
            last_modified=mtime,
            access="" if existing is None else existing.access,
            **metadata.model_dump(),
        )
        if existing is None:
            self.store.insert(record)
            report.inserted.append(absolute)
        else:
            self.store.update_descriptive(record)
            report.updated.append(absolute)

    def _prune(self, root: Path, report: SyncReport) -> None:
        vanished = [
            record.absolute_path
            for record in self.store.select_under(root)
            if _is_gone(record.absolute_path)
        ]
        if vanished:
            self.store.delete_many(vanished)
            report.pruned.extend(vanished)


def _is_gone(path: str) -> bool:
    # Permission errors leave the row alone; only a definite miss prunes.
    try:
        os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return True
    except OSError:
        return False
    return False


__all__ = ["Reconciler", "SyncReport"]
