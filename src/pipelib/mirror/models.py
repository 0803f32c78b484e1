"""Mirror data models."""

from __future__ import annotations

from pydantic import BaseModel

DESCRIPTIVE_FIELDS = (
    "name",
    "type",
    "package_name",
    "description",
    "tags",
    "location",
    "uri",
)


class PipefileRecord(BaseModel):
    """A mirrored pipefile row.

    Attributes:
        absolute_path: Absolute path of the pipefile; unique within the mirror.
        directory_id: Id of the owning directory.
        last_modified: Filesystem modification time in nanoseconds.
        name: Display name from the embedded document.
        type: Pipefile kind (``Module``, ``Module Group`` or ``Data``).
        package_name: Package the pipefile belongs to.
        description: Free-text description.
        tags: Comma separated tags.
        location: Executable location declared by the document.
        uri: Reference URI declared by the document.
        access: Access-control string managed outside the file.
    """

    absolute_path: str
    directory_id: int
    last_modified: int
    name: str = ""
    type: str = ""
    package_name: str = ""
    description: str = ""
    tags: str = ""
    location: str = ""
    uri: str = ""
    access: str = ""


__all__ = ["DESCRIPTIVE_FIELDS", "PipefileRecord"]
