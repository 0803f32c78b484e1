"""Command line interface for pipelib."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from pipelib.config import (
    ConfigError,
    ConfigManager,
    PipelibConfig,
    assign_nested,
    read_dotted,
    resolve_with_precedence,
)
from pipelib.errors import RootNotFoundError, SearchTermError
from pipelib.ingestion import SyncReport
from pipelib.library import LibraryService
from pipelib.logging_setup import configure_logging
from pipelib.mirror import MirrorError, PipefileRecord
from pipelib.organization import RemovalOutcome, TransferOutcome
from pipelib.rpc import dispatch

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit(message: Any, *, quiet: bool) -> None:
    if not quiet:
        console.print(message)


def _format_summary_line(command: str, target: Path | str, metrics: Mapping[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


class _Session:
    """Configuration and service shared by one CLI invocation."""

    def __init__(self, config: PipelibConfig, quiet: bool) -> None:
        self.config = config
        self.quiet = quiet

    def open_service(self) -> LibraryService:
        return LibraryService.from_config(self.config)

    def resolve_root(self, root: str | None) -> Path:
        candidate = root or self.config.library.root
        if not candidate:
            raise click.UsageError(
                "No library root given. Pass ROOT or set library.root in the configuration."
            )
        return Path(candidate).expanduser().absolute()


def _session(ctx: click.Context, quiet: bool = False) -> _Session:
    """Load configuration honoring group-level overrides and configure logging."""
    overrides: dict[str, Any] = dict(ctx.obj or {})
    manager = ConfigManager()
    config = manager.load(cli_overrides=overrides)
    configure_logging(config.logging)

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    return _Session(config, quiet if explicit_quiet else config.cli.quiet_default)


def _records_table(title: str, records: Mapping[str, PipefileRecord]) -> Table:
    table = Table(title=title)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Package")
    table.add_column("Tags", overflow="fold")
    table.add_column("Path", overflow="fold")
    for path, record in records.items():
        table.add_row(record.name, record.type, record.package_name, record.tags, path)
    return table


def _records_payload(records: Mapping[str, PipefileRecord]) -> dict[str, Any]:
    return {path: record.model_dump(mode="json") for path, record in records.items()}


def _emit_sync_report(report: SyncReport, *, quiet: bool) -> None:
    if report.errors:
        _emit("[red]Errors encountered:[/red]", quiet=False)
        for entry in report.errors:
            _emit(f"  - {entry}", quiet=False)
    _emit(_format_summary_line("Scan", report.root, report.counts), quiet=quiet)


def _emit_outcomes(
    command: str,
    destination: str,
    outcomes: Iterable[TransferOutcome | RemovalOutcome],
    *,
    quiet: bool,
) -> bool:
    """Print one line per outcome followed by a summary; return True if all succeeded."""
    counts: dict[str, int] = {}
    all_ok = True
    for outcome in outcomes:
        counts[outcome.status] = counts.get(outcome.status, 0) + 1
        label = outcome.source if isinstance(outcome, TransferOutcome) else outcome.path
        if outcome.ok:
            _emit(f"  [green]{outcome.status}[/green] {label}", quiet=quiet)
        else:
            all_ok = False
            _emit(f"  [red]{outcome.status}[/red] {label}: {outcome.error}", quiet=False)
    _emit(_format_summary_line(command, destination, counts), quiet=quiet)
    return all_ok


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="pipelib")
@click.option("--db", "db_path", type=click.Path(dir_okay=False), help="Mirror database path.")
@click.option("-v", "--verbose", is_flag=True, help="Log progress at INFO level.")
@click.pass_context
def cli(ctx: click.Context, db_path: str | None, verbose: bool) -> None:
    """pipelib manages libraries of pipefiles mirrored into a searchable database."""
    overrides: dict[str, Any] = {}
    if db_path:
        overrides["database.path"] = db_path
    if verbose:
        overrides["logging.level"] = "INFO"
    ctx.obj = overrides


@cli.command()
@click.argument("root", required=False, type=click.Path(file_okay=False, path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit the reconciliation report as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(ctx: click.Context, root: str | None, json_output: bool, quiet: bool) -> None:
    """Reconcile the mirror with the pipefiles under ROOT."""
    try:
        session = _session(ctx, quiet)
        with session.open_service() as service:
            report = service.sync(session.resolve_root(root))
        if json_output:
            console.print_json(data=report.model_dump(mode="json") | {"counts": report.counts})
            return
        _emit_sync_report(report, quiet=session.quiet)
    except RootNotFoundError as exc:
        _handle_cli_error(str(exc), code="not_found", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except MirrorError as exc:
        _handle_cli_error(str(exc), code="persistence_error", json_output=json_output, original=exc)


@cli.command("list")
@click.argument("root", required=False, type=click.Path(file_okay=False, path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit records as JSON keyed by path.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def list_command(ctx: click.Context, root: str | None, json_output: bool, quiet: bool) -> None:
    """List every pipefile under ROOT after reconciling the mirror."""
    try:
        session = _session(ctx, quiet)
        target = session.resolve_root(root)
        with session.open_service() as service:
            records = service.list_files(target)
        if json_output:
            console.print_json(data=_records_payload(records))
            return
        _emit(_records_table(f"Pipefiles under {target}", records), quiet=session.quiet)
        _emit(_format_summary_line("List", target, {"files": len(records)}), quiet=session.quiet)
    except RootNotFoundError as exc:
        _handle_cli_error(str(exc), code="not_found", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except MirrorError as exc:
        _handle_cli_error(str(exc), code="persistence_error", json_output=json_output, original=exc)


@cli.command()
@click.argument("term")
@click.option("--root", type=click.Path(file_okay=False, path_type=str), help="Library root.")
@click.option("--json", "json_output", is_flag=True, help="Emit matches as JSON keyed by path.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def search(
    ctx: click.Context, term: str, root: str | None, json_output: bool, quiet: bool
) -> None:
    """Find pipefiles whose name, package, description or tags contain TERM."""
    try:
        session = _session(ctx, quiet)
        target = session.resolve_root(root)
        with session.open_service() as service:
            records = service.search(target, term)
        if json_output:
            console.print_json(data=_records_payload(records))
            return
        _emit(_records_table(f"Matches for '{term}'", records), quiet=session.quiet)
        _emit(
            _format_summary_line("Search", target, {"matches": len(records)}),
            quiet=session.quiet,
        )
    except SearchTermError as exc:
        _handle_cli_error(str(exc), code="invalid_request", json_output=json_output, original=exc)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except MirrorError as exc:
        _handle_cli_error(str(exc), code="persistence_error", json_output=json_output, original=exc)


def _run_batch(
    ctx: click.Context,
    command: str,
    paths: tuple[str, ...],
    destination: str | None,
    json_output: bool,
    quiet: bool,
) -> None:
    try:
        session = _session(ctx, quiet)
        with session.open_service() as service:
            if command == "Move":
                outcomes: list[Any] = service.move_files(paths, destination or "")
            elif command == "Copy":
                outcomes = service.copy_files(paths, destination or "")
            else:
                outcomes = service.remove_files(paths)
        if json_output:
            console.print_json(data=[outcome.model_dump(mode="json") for outcome in outcomes])
            all_ok = all(outcome.ok for outcome in outcomes)
        else:
            target = destination or "library"
            all_ok = _emit_outcomes(command, target, outcomes, quiet=session.quiet)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except MirrorError as exc:
        _handle_cli_error(str(exc), code="persistence_error", json_output=json_output, original=exc)
        return
    if not all_ok:
        raise SystemExit(1)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.argument("destination", type=click.Path(path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit per-file outcomes as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def mv(
    ctx: click.Context, paths: tuple[str, ...], destination: str, json_output: bool, quiet: bool
) -> None:
    """Move PATHS into the DESTINATION package directory."""
    _run_batch(ctx, "Move", paths, destination, json_output, quiet)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.argument("destination", type=click.Path(path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit per-file outcomes as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def cp(
    ctx: click.Context, paths: tuple[str, ...], destination: str, json_output: bool, quiet: bool
) -> None:
    """Copy PATHS into the DESTINATION package directory."""
    _run_batch(ctx, "Copy", paths, destination, json_output, quiet)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit per-file outcomes as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def rm(ctx: click.Context, paths: tuple[str, ...], json_output: bool, quiet: bool) -> None:
    """Remove PATHS from disk and from the mirror."""
    _run_batch(ctx, "Remove", paths, None, json_output, quiet)


@cli.command()
@click.argument("operation")
@click.argument("payload", required=False, default="{}")
@click.pass_context
def call(ctx: click.Context, operation: str, payload: str) -> None:
    """Dispatch OPERATION with a JSON PAYLOAD and print the reply.

    OPERATION is one of listFiles, search, removeFiles, moveFiles or copyFiles.
    """
    try:
        arguments = json.loads(payload)
    except json.JSONDecodeError as exc:
        _handle_cli_error(f"Invalid JSON payload: {exc}", code="invalid_request", json_output=True)
        return
    try:
        session = _session(ctx)
        with session.open_service() as service:
            reply = dispatch(service, operation, arguments)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=True, original=exc)
        return
    except MirrorError as exc:
        _handle_cli_error(str(exc), code="persistence_error", json_output=True, original=exc)
        return
    console.print_json(data=reply)
    if "fault" in reply:
        raise SystemExit(1)


@cli.group()
def config() -> None:
    """Manage pipelib configuration files and overrides."""


def _file_layer_config(file_data: Mapping[str, Any]) -> PipelibConfig:
    """Validate ``file_data`` as the config file would be read, ignoring the environment."""
    try:
        return resolve_with_precedence(defaults=PipelibConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _setting_path(key: str) -> list[str]:
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'library.root'.")
    return segments


@config.command("view")
@click.argument("section", required=False)
@click.option("--no-env", is_flag=True, help="Ignore PIPELIB__* environment overrides.")
def config_view(section: str | None, no_env: bool) -> None:
    """Display the effective configuration, or one SECTION of it."""
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
        data = read_dotted(loaded, _setting_path(section)) if section else loaded.model_dump()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(f"[dim]# {manager.config_path}[/dim]")
    if not isinstance(data, dict):
        data = {section: data}
    console.print(Syntax(yaml.safe_dump(data, sort_keys=False), "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Store VALUE under the dotted KEY in the configuration file.

    VALUE is read as YAML, so ``false``, ``3`` and ``null`` keep their types.
    """
    segments = _setting_path(key)
    dotted = ".".join(segments)
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        file_data = manager.load_file_overrides()
        previous = read_dotted(_file_layer_config(file_data), segments)
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        assign_nested(file_data, segments, parsed_value, source_name="cli")
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    current = read_dotted(_file_layer_config(file_data), segments)
    if current == previous:
        console.print(f"[yellow]{dotted} is already {current!r}; nothing to change.[/yellow]")
        return

    manager.save(file_data)
    console.print(f"[green]{dotted}: {previous!r} -> {current!r}[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in $EDITOR and save it if it still validates."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes applied.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    _file_layer_config(parsed)
    manager.save(parsed)
    console.print(f"[green]Configuration updated: {manager.config_path}[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
