"""Command line interface for reporg."""

from __future__ import annotations

import difflib
from typing import Any, NoReturn, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from reporg.actions import ReporgActions
from reporg.cli_support import build_actions, configure_logging, load_config
from reporg.config import ConfigError, ConfigManager, ReporgConfig
from reporg.organization import MoveBatchResult, MoveOptions, MovePreviewEntry
from reporg.results import ActionResult
from reporg.scan import ScanProgress, format_progress_event
from reporg.state import RepositoryRecord, StoreError

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Abort the command with ``message``.

    In JSON mode an ``{"error": {"code", "message", "details"?}}`` object is
    printed and the process exits with status 1. Otherwise a
    ``click.ClickException`` is raised, chained to ``original``.
    """
    if json_output:
        error: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            error["details"] = details
        console.print_json(data={"error": error})
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message``; quiet keeps only errors, summary-only drops ``detail``."""
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary: {parts}.[/green]"


def _output_modes(
    ctx: click.Context,
    config: ReporgConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Resolve quiet and summary-only modes from flags and configured defaults.

    Raises:
        click.ClickException: If the combination of modes is contradictory.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _bootstrap(json_output: bool = False) -> tuple[ReporgConfig, ReporgActions]:
    """Load configuration, configure logging, and build the action surface."""
    try:
        config = load_config()
        configure_logging(config.logging)
        return config, build_actions(config)
    except (ConfigError, StoreError) as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)


def _require(result: ActionResult[Any], *, code: str, json_output: bool) -> ActionResult[Any]:
    """Abort the command when ``result`` failed; otherwise return it."""
    if not result.success:
        _handle_cli_error(result.error or "Unknown error", code=code, json_output=json_output)
    return result


def _report(result: ActionResult[Any], *, code: str, json_output: bool) -> None:
    """Print the outcome of a simple mutating action."""
    _require(result, code=code, json_output=json_output)
    if json_output:
        console.print_json(data=result.to_dict())
    elif result.message:
        console.print(f"[green]{result.message}[/green]")


def _repository_table(records: Sequence[RepositoryRecord], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Theme")
    table.add_column("Dirty")
    table.add_column("Path", overflow="fold")
    for record in records:
        table.add_row(
            str(record.id),
            record.name,
            record.triage_status.value,
            record.theme or "-",
            "yes" if record.is_dirty else "no",
            record.current_path,
        )
    return table


def _preview_table(entries: Sequence[MovePreviewEntry]) -> Table:
    table = Table(title="Move preview")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("From", overflow="fold")
    table.add_column("To", overflow="fold")
    table.add_column("Notes", overflow="fold")
    for entry in entries:
        notes = [f"[red]{text}[/red]" for text in entry.conflicts]
        notes.extend(f"[yellow]{text}[/yellow]" for text in entry.warnings)
        table.add_row(
            str(entry.repo_id),
            entry.repo_name or "-",
            entry.source or "-",
            entry.target or "-",
            "\n".join(notes) or "[green]ready[/green]",
        )
    return table


def _emit_move_results(batch: MoveBatchResult, *, quiet: bool, summary_only: bool) -> None:
    for result in batch.results:
        if result.success:
            _emit_message(
                f"[green]Moved {result.repo_name}[/green] -> {result.target}",
                mode="detail",
                quiet=quiet,
                summary_only=summary_only,
            )
        else:
            _emit_message(
                f"[red]Failed {result.repo_name}: {result.error}[/red]",
                mode="error",
                quiet=quiet,
                summary_only=summary_only,
            )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="reporg")
def cli() -> None:
    """reporg finds git repositories on disk and files them into themed folders."""


# Scanning -------------------------------------------------------------


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the scan result as JSON.")
@click.option(
    "--stream", is_flag=True, help="Print every progress change as a server-sent event frame."
)
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context, json_output: bool, stream: bool, summary_mode: bool, quiet: bool
) -> None:
    """Scan every enabled scan directory for git repositories.

    Args:
        ctx: Click context used for parameter source inspection.
        json_output: Emit the result payload as JSON.
        stream: Print progress events while scanning.
        summary_mode: Limit output to summary lines.
        quiet: Suppress non-error output.
    """
    config, actions = _bootstrap(json_output)
    quiet_enabled, summary_only = _output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )

    def _stream(progress: ScanProgress) -> None:
        click.echo(format_progress_event(progress), nl=False)

    unsubscribe = actions.orchestrator.progress.subscribe(_stream) if stream else None
    try:
        result = actions.trigger_scan()
    finally:
        if unsubscribe is not None:
            unsubscribe()

    _require(result, code="scan_failed", json_output=json_output)
    if json_output:
        console.print_json(data=result.to_dict())
        return

    summary = result.data
    _emit_message(
        _format_summary_line(
            "Scan",
            {
                "new": summary.new_repos,
                "updated": summary.updated_repos,
                "total": summary.total_scanned,
            },
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )
    if summary.cancelled:
        _emit_message(
            "[yellow]Scan was cancelled before finishing.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )


# Moves ----------------------------------------------------------------


@cli.command()
@click.argument("repo_ids", nargs=-1, type=int, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit the preview as JSON.")
def preview(repo_ids: tuple[int, ...], json_output: bool) -> None:
    """Show where REPO_IDS would be moved without touching the filesystem."""
    _, actions = _bootstrap(json_output)
    result = _require(
        actions.generate_preview(repo_ids), code="preview_failed", json_output=json_output
    )
    if json_output:
        console.print_json(data=result.to_dict())
        return
    console.print(_preview_table(result.data))


@cli.command()
@click.argument("repo_ids", nargs=-1, type=int, required=True)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip the confirmation prompt.")
@click.option(
    "--conflicts",
    type=click.Choice(["suffix", "skip", "fail"]),
    help="How to treat targets that appear after the preview was computed.",
)
@click.option(
    "--backup/--no-backup",
    default=None,
    help="Write a git bundle of each repository to the backup destination first.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the move results as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def move(
    ctx: click.Context,
    repo_ids: tuple[int, ...],
    assume_yes: bool,
    conflicts: str | None,
    backup: bool | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Preview and then move REPO_IDS into the organization root.

    Args:
        ctx: Click context used for parameter source inspection.
        repo_ids: Repositories to move.
        assume_yes: Execute without asking for confirmation.
        conflicts: Conflict policy override.
        backup: Backup override.
        json_output: Emit results as JSON.
        summary_mode: Limit output to summary lines.
        quiet: Suppress non-error output.
    """
    config, actions = _bootstrap(json_output)
    quiet_enabled, summary_only = _output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    if json_output and not assume_yes:
        _handle_cli_error(
            "--json requires --yes because no confirmation prompt can be shown.",
            code="confirmation_required",
            json_output=True,
        )

    planned = _require(
        actions.generate_preview(repo_ids), code="preview_failed", json_output=json_output
    )
    entries: list[MovePreviewEntry] = planned.data
    if not json_output:
        _emit_message(
            _preview_table(entries), mode="detail", quiet=quiet_enabled, summary_only=summary_only
        )

    executable = [entry for entry in entries if entry.is_executable]
    if executable and not assume_yes:
        click.confirm(f"Move {len(executable)} repositories?", abort=True)

    options = MoveOptions(
        handle_conflicts=conflicts or config.organization.handle_conflicts,
        create_backup=config.organization.create_backup if backup is None else backup,
    )
    result = _require(
        actions.execute_moves(entries, options), code="move_failed", json_output=json_output
    )
    if json_output:
        console.print_json(data=result.to_dict())
        return

    batch: MoveBatchResult = result.data
    _emit_move_results(batch, quiet=quiet_enabled, summary_only=summary_only)
    _emit_message(
        _format_summary_line("Move", {"moved": batch.successful, "failed": batch.failed}),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


# Repositories ---------------------------------------------------------


@cli.group()
def repos() -> None:
    """Inspect and triage tracked repositories."""


@repos.command("list")
@click.option(
    "--status",
    type=click.Choice(["all", "pending", "manual", "auto", "ignored"]),
    default="all",
    show_default=True,
)
@click.option("--theme", type=str, help="Only show repositories with this theme.")
@click.option("--search", type=str, help="Match name, path, or remote URL.")
@click.option("--dirty/--clean", "dirty", default=None, help="Filter by working tree state.")
@click.option("--ready", is_flag=True, help="Only show themed repositories awaiting a move.")
@click.option("--json", "json_output", is_flag=True, help="Emit repositories as JSON.")
def repos_list(
    status: str,
    theme: str | None,
    search: str | None,
    dirty: bool | None,
    ready: bool,
    json_output: bool,
) -> None:
    """List tracked repositories."""
    _, actions = _bootstrap(json_output)
    if ready:
        result = actions.triage_ready()
    else:
        result = actions.repositories(status=status, theme=theme, search=search, is_dirty=dirty)
    _require(result, code="list_failed", json_output=json_output)

    if json_output:
        console.print_json(data=result.to_dict())
        return

    records: list[RepositoryRecord] = result.data
    if not records:
        console.print("[yellow]No repositories found.[/yellow]")
        return
    console.print(_repository_table(records, "Ready to move" if ready else "Repositories"))
    counts = actions.repository_counts().data or {}
    console.print(_format_summary_line("Repository", counts))


@repos.command("assign")
@click.argument("theme")
@click.argument("repo_ids", nargs=-1, type=int, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
def repos_assign(theme: str, repo_ids: tuple[int, ...], json_output: bool) -> None:
    """Assign THEME to REPO_IDS."""
    _, actions = _bootstrap(json_output)
    if len(repo_ids) == 1:
        result = actions.assign_theme(repo_ids[0], theme)
    else:
        result = actions.bulk_assign_theme(repo_ids, theme)
    _report(result, code="assign_failed", json_output=json_output)


@repos.command("ignore")
@click.argument("repo_id", type=int)
def repos_ignore(repo_id: int) -> None:
    """Exclude REPO_ID from triage."""
    _, actions = _bootstrap()
    _report(actions.ignore_repository(repo_id), code="ignore_failed", json_output=False)


@repos.command("reset")
@click.argument("repo_id", type=int)
def repos_reset(repo_id: int) -> None:
    """Return an ignored REPO_ID to pending."""
    _, actions = _bootstrap()
    _report(actions.reset_repository(repo_id), code="reset_failed", json_output=False)


@repos.command("refresh")
@click.argument("repo_id", type=int)
def repos_refresh(repo_id: int) -> None:
    """Re-read git state for REPO_ID."""
    _, actions = _bootstrap()
    _report(actions.refresh_repository_status(repo_id), code="refresh_failed", json_output=False)


@repos.command("remove")
@click.argument("repo_id", type=int)
def repos_remove(repo_id: int) -> None:
    """Forget REPO_ID without touching its files."""
    _, actions = _bootstrap()
    _report(actions.delete_repository_record(repo_id), code="remove_failed", json_output=False)


# Scan directories -----------------------------------------------------


@cli.group()
def dirs() -> None:
    """Manage the directories searched by scans."""


@dirs.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit scan directories as JSON.")
def dirs_list(json_output: bool) -> None:
    """List scan directories."""
    _, actions = _bootstrap(json_output)
    result = _require(actions.scan_directories(), code="list_failed", json_output=json_output)
    if json_output:
        console.print_json(data=result.to_dict())
        return
    if not result.data:
        console.print("[yellow]No scan directories configured.[/yellow]")
        return
    table = Table(title="Scan directories")
    table.add_column("ID", justify="right")
    table.add_column("Path", overflow="fold")
    table.add_column("WSL")
    table.add_column("Enabled")
    for directory in result.data:
        table.add_row(
            str(directory.id),
            directory.path,
            "yes" if directory.is_wsl else "no",
            "yes" if directory.enabled else "no",
        )
    console.print(table)


@dirs.command("add")
@click.argument("path")
@click.option("--wsl/--no-wsl", "is_wsl", default=None, help="Override WSL path detection.")
def dirs_add(path: str, is_wsl: bool | None) -> None:
    """Add PATH as a scan directory."""
    _, actions = _bootstrap()
    _report(actions.add_scan_directory(path, is_wsl=is_wsl), code="add_failed", json_output=False)


@dirs.command("remove")
@click.argument("directory_id", type=int)
def dirs_remove(directory_id: int) -> None:
    """Remove scan directory DIRECTORY_ID."""
    _, actions = _bootstrap()
    _report(actions.remove_scan_directory(directory_id), code="remove_failed", json_output=False)


@dirs.command("toggle")
@click.argument("directory_id", type=int)
def dirs_toggle(directory_id: int) -> None:
    """Enable or disable scan directory DIRECTORY_ID."""
    _, actions = _bootstrap()
    _report(actions.toggle_scan_directory(directory_id), code="toggle_failed", json_output=False)


# Themes ---------------------------------------------------------------


@cli.group()
def themes() -> None:
    """Manage themes."""


@themes.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit themes as JSON.")
def themes_list(json_output: bool) -> None:
    """List themes."""
    _, actions = _bootstrap(json_output)
    result = _require(actions.themes(), code="list_failed", json_output=json_output)
    if json_output:
        console.print_json(data=result.to_dict())
        return
    if not result.data:
        console.print("[yellow]No themes defined. Run `reporg themes defaults`.[/yellow]")
        return
    table = Table(title="Themes")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Color")
    table.add_column("Description")
    for theme in result.data:
        table.add_row(
            str(theme.id),
            theme.name,
            f"[{theme.color}]{theme.color}[/{theme.color}]",
            theme.description or "",
        )
    console.print(table)


@themes.command("add")
@click.argument("name")
@click.option("--color", type=str, help="Hex color such as #3776AB.")
@click.option("--description", type=str, help="Short description.")
def themes_add(name: str, color: str | None, description: str | None) -> None:
    """Create theme NAME."""
    _, actions = _bootstrap()
    _report(
        actions.create_theme(name, color=color, description=description),
        code="create_failed",
        json_output=False,
    )


@themes.command("update")
@click.argument("theme_id", type=int)
@click.option("--name", type=str, help="New theme name.")
@click.option("--color", type=str, help="New hex color.")
@click.option("--description", type=str, help="New description.")
def themes_update(
    theme_id: int, name: str | None, color: str | None, description: str | None
) -> None:
    """Update theme THEME_ID."""
    _, actions = _bootstrap()
    _report(
        actions.update_theme(theme_id, name=name, color=color, description=description),
        code="update_failed",
        json_output=False,
    )


@themes.command("remove")
@click.argument("theme_id", type=int)
def themes_remove(theme_id: int) -> None:
    """Delete theme THEME_ID when no repository uses it."""
    _, actions = _bootstrap()
    _report(actions.delete_theme(theme_id), code="delete_failed", json_output=False)


@themes.command("defaults")
def themes_defaults() -> None:
    """Create the built-in themes."""
    _, actions = _bootstrap()
    _report(actions.create_default_themes(), code="create_failed", json_output=False)


# Settings -------------------------------------------------------------


@cli.group()
def settings() -> None:
    """View and change organization settings."""


@settings.command("view")
@click.option("--json", "json_output", is_flag=True, help="Emit settings as JSON.")
def settings_view(json_output: bool) -> None:
    """Show the organization root, backup destination, and setup state."""
    _, actions = _bootstrap(json_output)
    result = _require(actions.settings(), code="settings_failed", json_output=json_output)
    if json_output:
        console.print_json(data=result.to_dict())
        return
    current = result.data
    complete = bool(actions.is_setup_complete().data)
    table = Table(title="Settings", show_header=False)
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    table.add_row("organization_root", current.organization_root or "-")
    table.add_row("backup_destination", current.backup_destination or "-")
    table.add_row("auto_triage_enabled", "yes" if current.auto_triage_enabled else "no")
    table.add_row("setup_complete", "yes" if complete else "no")
    console.print(table)


@settings.command("set")
@click.option("--root", "organization_root", type=str, help="Organization root directory.")
@click.option("--backup", "backup_destination", type=str, help="Directory for git bundles.")
@click.option("--auto-triage/--no-auto-triage", default=None, help="Toggle automatic triage.")
def settings_set(
    organization_root: str | None, backup_destination: str | None, auto_triage: bool | None
) -> None:
    """Update organization settings."""
    if organization_root is None and backup_destination is None and auto_triage is None:
        raise click.UsageError("Provide at least one of --root, --backup, --auto-triage.")
    _, actions = _bootstrap()
    _report(
        actions.update_settings(
            organization_root=organization_root,
            backup_destination=backup_destination,
            auto_triage_enabled=auto_triage,
        ),
        code="settings_failed",
        json_output=False,
    )


# Configuration --------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage reporg configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    meaningful = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---", "+# Last updated", "-# Last updated"))
    ]
    if not meaningful:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key.strip()}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        manager.replace_text(edited)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
