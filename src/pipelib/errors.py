"""Errors raised by library operations."""


class LibraryError(Exception):
    """Base exception for library operations surfaced to callers."""


class RootNotFoundError(LibraryError):
    """Raised when a library root does not exist or is not a directory."""


class SearchTermError(LibraryError):
    """Raised when a search term is too short to run a query."""


__all__ = ["LibraryError", "RootNotFoundError", "SearchTermError"]
