"""Pipefile discovery, parsing and reconciliation."""

from .discovery import PipefileScanner
from .errors import ParseError
from .parser import MetadataParser, PipefileMetadata
from .reconciler import Reconciler, SyncReport

__all__ = [
    "PipefileScanner",
    "MetadataParser",
    "PipefileMetadata",
    "ParseError",
    "Reconciler",
    "SyncReport",
]
