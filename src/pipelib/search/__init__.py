"""Listing and search over the pipefile mirror."""

from .query import SEARCH_FIELDS, QueryService, escape_like

__all__ = ["QueryService", "SEARCH_FIELDS", "escape_like"]
