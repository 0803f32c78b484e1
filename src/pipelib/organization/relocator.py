"""Moving and copying pipefiles between package directories."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, Literal

from pipelib.ingestion.document import package_label, rewrite_package
from pipelib.ingestion.errors import ParseError
from pipelib.ingestion.parser import MetadataParser
from pipelib.mirror import DESCRIPTIVE_FIELDS, MirrorError, MirrorStore, PathIndex, PipefileRecord

from .models import TransferOutcome

LOGGER = logging.getLogger(__name__)

Operation = Literal["move", "copy"]


class _Compensations:
    """Undo actions recorded as transfer steps complete."""

    def __init__(self) -> None:
        self._actions: list[tuple[str, Callable[[], None]]] = []

    def push(self, description: str, action: Callable[[], None]) -> None:
        self._actions.append((description, action))

    def unwind(self) -> list[str]:
        """Run recorded actions newest first and return descriptions of failures."""
        failures: list[str] = []
        for description, action in reversed(self._actions):
            try:
                action()
            except OSError as exc:
                LOGGER.warning("Compensation '%s' failed: %s", description, exc)
                failures.append(f"{description}: {exc}")
        self._actions.clear()
        return failures


def _absolute(path: str | Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(str(path)))))


class Relocator:
    """Move or copy pipefiles while keeping file, document and mirror in step.

    A transfer runs as a sequence of steps: place the file, rewrite the
    ``package`` attribute of its modules, then migrate the mirror row. Each
    completed step registers an undo action; when a later step fails the
    recorded actions run in reverse.
    """

    def __init__(
        self,
        store: MirrorStore,
        paths: PathIndex,
        parser: MetadataParser,
        *,
        create_missing_destinations: bool = True,
    ) -> None:
        self.store = store
        self.paths = paths
        self.parser = parser
        self.create_missing_destinations = create_missing_destinations

    def move(self, source: str | Path, destination_dir: str | Path) -> TransferOutcome:
        """Move ``source`` into ``destination_dir``.

        Raises:
            MirrorError: If the mirror update fails; file changes are undone first.
        """
        return self._transfer(_absolute(source), _absolute(destination_dir), "move")

    def copy(self, source: str | Path, destination_dir: str | Path) -> TransferOutcome:
        """Copy ``source`` into ``destination_dir``, leaving the original in place.

        Raises:
            MirrorError: If the mirror update fails; the copy is removed first.
        """
        return self._transfer(_absolute(source), _absolute(destination_dir), "copy")

    def move_files(
        self, sources: Iterable[str | Path], destination_dir: str | Path
    ) -> list[TransferOutcome]:
        """Move each source independently and return one outcome per source."""
        return [self.move(source, destination_dir) for source in sources]

    def copy_files(
        self, sources: Iterable[str | Path], destination_dir: str | Path
    ) -> list[TransferOutcome]:
        """Copy each source independently and return one outcome per source."""
        return [self.copy(source, destination_dir) for source in sources]

    # ------------------------------------------------------------------ #
    # Steps                                                              #
    # ------------------------------------------------------------------ #

    def _transfer(self, source: Path, destination_dir: Path, operation: Operation) -> TransferOutcome:
        target = destination_dir / source.name
        outcome = TransferOutcome(
            operation=operation,
            source=str(source),
            destination=str(target),
            status="failed",
        )

        if not source.is_file():
            return self._finish(outcome, "missing", f"Source file not found: {source}")
        if target == source:
            return self._finish(outcome, "skipped", "Source already lives in the destination.")

        undo = _Compensations()
        try:
            for created in self._prepare_destination(destination_dir):
                undo.push(f"remove {created}", created.rmdir)
        except OSError as exc:
            undo.unwind()
            return self._finish(outcome, "failed", f"Destination unavailable: {exc}")
        if target.exists():
            return self._finish(outcome, "failed", f"Destination already exists: {target}")

        try:
            if operation == "move":
                source.rename(target)
                undo.push("rename back", lambda: target.rename(source))
                outcome.steps.append("renamed")
            else:
                shutil.copy2(source, target)
                undo.push("delete copy", target.unlink)
                outcome.steps.append("copied")
        except OSError as exc:
            undo.unwind()
            return self._finish(outcome, "failed", f"Unable to {operation} file: {exc}")

        label = package_label(destination_dir)
        try:
            original_bytes = target.read_bytes()
            rewrite_package(target, label)
        except (ParseError, OSError) as exc:
            return self._compensate(outcome, undo, exc)
        undo.push("restore document", lambda: target.write_bytes(original_bytes))
        outcome.steps.append("document_rewritten")

        try:
            destination_id = self.paths.resolve(destination_dir)
            self._migrate_row(source, target, destination_id, label, operation)
        except (ParseError, OSError) as exc:
            return self._compensate(outcome, undo, exc)
        except MirrorError as exc:
            self._compensate(outcome, undo, exc)
            raise
        outcome.steps.append("mirror_migrated")

        LOGGER.info("%s %s -> %s", operation.capitalize(), source, target)
        return self._finish(outcome, "moved" if operation == "move" else "copied", None)

    def _prepare_destination(self, destination_dir: Path) -> list[Path]:
        """Ensure ``destination_dir`` exists and return the directories created, outermost first."""
        missing: list[Path] = []
        current = destination_dir
        while not current.exists() and current != current.parent:
            missing.append(current)
            current = current.parent
        if not missing:
            if not destination_dir.is_dir():
                raise NotADirectoryError(f"Not a directory: {destination_dir}")
            return []
        if not self.create_missing_destinations:
            raise FileNotFoundError(f"No such directory: {destination_dir}")
        missing.reverse()
        created: list[Path] = []
        try:
            for directory in missing:
                directory.mkdir()
                created.append(directory)
        except OSError:
            for directory in reversed(created):
                directory.rmdir()
            raise
        return created

    def _migrate_row(
        self,
        source: Path,
        target: Path,
        destination_id: int,
        label: str,
        operation: Operation,
    ) -> None:
        previous = self.store.get(str(source))
        if previous is not None:
            fields = previous.model_dump(include={*DESCRIPTIVE_FIELDS, "access"})
        else:
            fields = self.parser.parse(target).model_dump()
        fields["package_name"] = label

        record = PipefileRecord(
            absolute_path=str(target),
            directory_id=destination_id,
            last_modified=target.stat().st_mtime_ns,
            **fields,
        )
        if operation == "move":
            self.store.relocate(previous, record)
        else:
            self.store.put(record)

    def _compensate(
        self, outcome: TransferOutcome, undo: _Compensations, exc: Exception
    ) -> TransferOutcome:
        LOGGER.warning("Undoing %s of %s after failure: %s", outcome.operation, outcome.source, exc)
        failures = undo.unwind()
        if failures:
            message = f"{exc}; undo incomplete ({'; '.join(failures)})"
            return self._finish(outcome, "partial", message)
        return self._finish(outcome, "rolled_back", str(exc))

    def _finish(self, outcome: TransferOutcome, status: str, error: str | None) -> TransferOutcome:
        outcome.status = status  # type: ignore[assignment]
        outcome.error = error
        if error and status != "skipped":
            LOGGER.debug("%s of %s ended as %s: %s", outcome.operation, outcome.source, status, error)
        return outcome


__all__ = ["Relocator"]
