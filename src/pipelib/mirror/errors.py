"""Mirror persistence errors."""


class MirrorError(Exception):
    """Raised when the mirror database cannot complete an operation."""
