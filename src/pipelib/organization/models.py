"""Per-item outcomes for library mutations."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TransferStatus = Literal["moved", "copied", "missing", "skipped", "failed", "rolled_back", "partial"]
RemovalStatus = Literal["removed", "missing", "failed"]


class TransferOutcome(BaseModel):
    """Result of moving or copying one pipefile.

    Attributes:
        operation: ``move`` or ``copy``.
        source: Absolute source path.
        destination: Absolute destination file path.
        status: Final state of the transfer. ``rolled_back`` means a later step
            failed and earlier steps were undone; ``partial`` means undoing them
            failed too and the resources may disagree.
        steps: Steps that completed, in order.
        error: Failure description when the transfer did not complete.
    """

    operation: Literal["move", "copy"]
    source: str
    destination: str
    status: TransferStatus
    steps: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Return True when the transfer completed."""
        return self.status in ("moved", "copied")


class RemovalOutcome(BaseModel):
    """Result of removing one pipefile.

    Attributes:
        path: Absolute path that was targeted.
        status: ``removed``, ``missing`` (nothing on disk) or ``failed``.
        mirror_row_removed: Whether a mirror row was deleted.
        error: Failure description when removal failed.
    """

    path: str
    status: RemovalStatus
    mirror_row_removed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Return True when the file no longer exists on disk."""
        return self.status != "failed"


__all__ = ["TransferOutcome", "TransferStatus", "RemovalOutcome", "RemovalStatus"]
