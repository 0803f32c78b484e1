"""Configuration models describing pipelib settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PipelibBaseModel(BaseModel):
    """Shared configuration for pipelib Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class LibrarySettings(PipelibBaseModel):
    """Library location and file conventions.

    Attributes:
        root: Default library root used when commands omit one.
        suffix: Filename suffix identifying pipefiles.
    """

    root: Optional[str] = None
    suffix: str = ".pipe"

    @field_validator("suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("suffix must not be empty")
        return value if value.startswith(".") else f".{value}"


class DatabaseSettings(PipelibBaseModel):
    """Mirror database options.

    Attributes:
        path: Location of the SQLite mirror database.
        busy_timeout_ms: How long a connection waits on a locked database.
    """

    path: str = "~/.pipelib/library.db"
    busy_timeout_ms: int = 5_000


class ScanningOptions(PipelibBaseModel):
    """Directory walking and reconciliation behavior.

    Attributes:
        follow_symlinks: Whether to descend into symlinked directories.
        include_hidden: Whether dot-prefixed entries are scanned.
        prune_missing: Whether sync deletes rows for files that vanished.
    """

    follow_symlinks: bool = False
    include_hidden: bool = False
    prune_missing: bool = True


class SearchSettings(PipelibBaseModel):
    """Search guard rails.

    Attributes:
        min_term_length: Shortest search term accepted by the query service.
    """

    min_term_length: int = Field(default=2, ge=1)


class OrganizationOptions(PipelibBaseModel):
    """Settings that govern move and copy operations.

    Attributes:
        create_missing_destinations: Create destination package folders on demand.
    """

    create_missing_destinations: bool = True


class LoggingSettings(PipelibBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; enables a rotating file handler.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(PipelibBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
    """

    quiet_default: bool = False


class PipelibConfig(PipelibBaseModel):
    """Top-level configuration struct for pipelib.

    Attributes:
        library: Library root and file conventions.
        database: Mirror database settings.
        scanning: Directory walking settings.
        search: Search settings.
        organization: Move and copy settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    library: LibrarySettings = Field(default_factory=LibrarySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scanning: ScanningOptions = Field(default_factory=ScanningOptions)
    search: SearchSettings = Field(default_factory=SearchSettings)
    organization: OrganizationOptions = Field(default_factory=OrganizationOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PipelibBaseModel",
    "LibrarySettings",
    "DatabaseSettings",
    "ScanningOptions",
    "SearchSettings",
    "OrganizationOptions",
    "LoggingSettings",
    "CLIOptions",
    "PipelibConfig",
]
