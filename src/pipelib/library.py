"""Library service combining reconciliation, queries and relocation."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from pipelib.config import PipelibConfig
from pipelib.ingestion import MetadataParser, PipefileScanner, Reconciler, SyncReport
from pipelib.mirror import MirrorStore, PathIndex, PipefileRecord
from pipelib.organization import RemovalOutcome, Relocator, Remover, TransferOutcome
from pipelib.search import QueryService


class LibraryService:
    """Entry point for the operations exposed to clients.

    All collaborators share one mirror connection handed in at construction,
    so tests can supply an in-memory store.
    """

    def __init__(
        self,
        store: MirrorStore,
        config: PipelibConfig | None = None,
        *,
        parser: MetadataParser | None = None,
    ) -> None:
        self.config = config or PipelibConfig()
        self.store = store
        self.paths = PathIndex(store.connection)
        self.parser = parser or MetadataParser()
        self.scanner = PipefileScanner(
            suffix=self.config.library.suffix,
            follow_symlinks=self.config.scanning.follow_symlinks,
            include_hidden=self.config.scanning.include_hidden,
        )
        self.reconciler = Reconciler(
            store,
            self.paths,
            self.scanner,
            self.parser,
            prune_missing=self.config.scanning.prune_missing,
        )
        self.queries = QueryService(
            store, self.paths, min_term_length=self.config.search.min_term_length
        )
        self.relocator = Relocator(
            store,
            self.paths,
            self.parser,
            create_missing_destinations=self.config.organization.create_missing_destinations,
        )
        self.remover = Remover(store)

    @classmethod
    def from_config(cls, config: PipelibConfig) -> "LibraryService":
        """Open the configured mirror database and build a service around it."""
        store = MirrorStore.open(
            config.database.path, busy_timeout_ms=config.database.busy_timeout_ms
        )
        return cls(store, config)

    def __enter__(self) -> "LibraryService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the mirror connection."""
        self.store.close()

    def sync(self, root: str | Path) -> SyncReport:
        """Reconcile the mirror with the pipefiles under ``root``."""
        return self.reconciler.sync(Path(root))

    def list_files(self, root: str | Path) -> dict[str, PipefileRecord]:
        """Reconcile ``root`` and return every pipefile beneath it.

        Raises:
            RootNotFoundError: If ``root`` is not an existing directory.
        """
        report = self.sync(root)
        return self.queries.list(report.directory_id)

    def search(self, root: str | Path, term: str) -> dict[str, PipefileRecord]:
        """Search pipefiles mirrored under ``root`` without reconciling first.

        Raises:
            SearchTermError: If ``term`` is below the minimum length.
        """
        return self.queries.search_under(root, term)

    def remove_files(self, paths: Iterable[str | Path]) -> list[RemovalOutcome]:
        """Remove each file and its mirror row."""
        return self.remover.remove_files(paths)

    def move_files(
        self, paths: Iterable[str | Path], destination: str | Path
    ) -> list[TransferOutcome]:
        """Move each file into the ``destination`` package directory."""
        return self.relocator.move_files(paths, destination)

    def copy_files(
        self, paths: Iterable[str | Path], destination: str | Path
    ) -> list[TransferOutcome]:
        """Copy each file into the ``destination`` package directory."""
        return self.relocator.copy_files(paths, destination)


__all__ = ["LibraryService"]
