"""Directory-scoped listing and search over the mirror."""

from __future__ import annotations

import logging
from pathlib import Path

from pipelib.errors import SearchTermError
from pipelib.mirror import MirrorStore, PathIndex, PipefileRecord

LOGGER = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "package_name", "description", "tags")
_LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape ``LIKE`` wildcards so ``term`` matches literally."""
    for char in (_LIKE_ESCAPE, "%", "_"):
        term = term.replace(char, _LIKE_ESCAPE + char)
    return term


class QueryService:
    """Serve listings and substring searches scoped to a directory subtree.

    A subtree holds every mirrored pipefile whose path lies beneath the
    directory, whichever directory id its row carries.
    """

    def __init__(
        self,
        store: MirrorStore,
        paths: PathIndex,
        *,
        min_term_length: int = 2,
    ) -> None:
        self.store = store
        self.paths = paths
        self.min_term_length = min_term_length

    def list(self, directory_id: int) -> dict[str, PipefileRecord]:
        """Return every mirrored pipefile under ``directory_id`` keyed by path."""
        directory = self.paths.path_for(directory_id)
        if directory is None:
            return {}
        return self.list_under(directory)

    def list_under(self, directory: str | Path) -> dict[str, PipefileRecord]:
        """Return every mirrored pipefile beneath the ``directory`` path."""
        return {record.absolute_path: record for record in self.store.select_under(directory)}

    def normalize_term(self, term: str) -> str:
        """Return the lowercased, stripped ``term`` or raise if it is too short.

        Raises:
            SearchTermError: If ``term`` is shorter than the configured minimum.
        """
        needle = (term or "").strip().lower()
        if len(needle) < self.min_term_length:
            raise SearchTermError(
                f"Search terms need at least {self.min_term_length} characters; got {term!r}."
            )
        return needle

    def search(self, directory_id: int, term: str) -> dict[str, PipefileRecord]:
        """Return pipefiles under ``directory_id`` whose text fields contain ``term``.

        Matching is case-insensitive across name, package name, description
        and tags.

        Raises:
            SearchTermError: If ``term`` is shorter than the configured minimum.
        """
        self.normalize_term(term)
        directory = self.paths.path_for(directory_id)
        if directory is None:
            return {}
        return self.search_under(directory, term)

    def search_under(self, directory: str | Path, term: str) -> dict[str, PipefileRecord]:
        """Search pipefiles beneath the ``directory`` path.

        Raises:
            SearchTermError: If ``term`` is shorter than the configured minimum.
        """
        needle = self.normalize_term(term)
        pattern = f"%{escape_like(needle)}%"
        clause = " OR ".join(
            f"LOWER({field}) LIKE ? ESCAPE '{_LIKE_ESCAPE}'" for field in SEARCH_FIELDS
        )
        records = self.store.select_under(
            directory, where=clause, params=[pattern] * len(SEARCH_FIELDS)
        )
        LOGGER.debug("Search %r under %s matched %d row(s)", needle, directory, len(records))
        return {record.absolute_path: record for record in records}


__all__ = ["QueryService", "SEARCH_FIELDS", "escape_like"]
