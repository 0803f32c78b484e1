"""Ingestion errors."""


class ParseError(Exception):
    """Raised when a pipefile cannot be read or its document is malformed."""
