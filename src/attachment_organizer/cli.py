"""Command-line interface.

Usage:
    attachment-organizer --vault ~/notes scan
    attachment-organizer --vault ~/notes plan
    attachment-organizer --vault ~/notes apply --yes
    attachment-organizer --vault ~/notes undo
    attachment-organizer --vault ~/notes init-settings
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import get_undo_history_path
from .engine import ConfirmCallback, Organizer
from .exceptions import OrganizerError
from .filesystem import LocalVault, MarkdownMetadata
from .logging_config import configure_logging, setup_structured_logging
from .models import FileEntry, FileKind, Mark, Move, MoveTo, mark_of
from .settings import load_settings, save_settings
from .undo import UndoLedger

logger = logging.getLogger(__name__)

MARK_STYLES = {
    Mark.NOTE: "dim",
    Mark.KEEP: "green",
    Mark.STAGE: "yellow",
    Mark.RELOCATE: "cyan",
    Mark.MISSING: "magenta",
    Mark.CONFLICT: "red",
}


def _build_organizer(ctx: click.Context) -> Organizer:
    vault_root: Path = ctx.obj["vault"]
    try:
        vault = LocalVault(vault_root)
        settings = load_settings(vault.root)
    except OrganizerError as e:
        raise click.ClickException(str(e)) from e

    ledger = UndoLedger(storage_path=get_undo_history_path(vault.root))
    logger.debug(f"[Undo] {len(ledger)} batch(es) on record for {vault.root}")
    return Organizer(vault, MarkdownMetadata(vault), settings, undo_ledger=ledger)


def _prompt_confirm(title: str, message: str, moves: List[Move]) -> bool:
    click.echo(f"{title}\n{message}")
    return click.confirm("Proceed?", default=False)


def _action_text(entry: FileEntry) -> str:
    action = entry.action
    if isinstance(action, MoveTo):
        return f"-> {action.target}"
    return action.type


@click.group()
@click.version_option(version=__version__, prog_name="attachment-organizer")
@click.option(
    "--vault",
    "vault",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Vault root directory",
)
@click.option("--log-level", default=None, help="Log level (defaults to ORGANIZER_LOG_LEVEL)")
@click.option("--json-logs", is_flag=True, help="Emit structured JSON log records")
@click.pass_context
def cli(ctx: click.Context, vault: Path, log_level: Optional[str], json_logs: bool) -> None:
    """Attachment organizer - keep note attachments next to the notes that use them.

    Run `attachment-organizer <command> --help` for command-specific help.
    """
    if json_logs:
        setup_structured_logging(log_level)
    else:
        configure_logging(log_level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault


@cli.command(name="scan")
@click.option("--all", "show_all", is_flag=True, help="Include notes in the listing")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def scan(ctx: click.Context, show_all: bool, as_json: bool) -> None:
    """Detect attachments, their backlinks and planned actions."""
    organizer = _build_organizer(ctx)
    report = organizer.detect_report(force=True)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return

    console = Console()
    table = Table(title="Attachment Report")
    table.add_column("Mark", justify="center")
    table.add_column("Path", style="cyan", overflow="fold")
    table.add_column("Action", overflow="fold")
    table.add_column("Links", justify="right")
    table.add_column("Tags", style="yellow")

    for entry in sorted(report.entries, key=lambda e: e.path):
        if entry.kind == FileKind.NOTE and not show_all:
            continue
        mark = mark_of(entry)
        table.add_row(
            f"[{MARK_STYLES[mark]}]{mark.value}[/{MARK_STYLES[mark]}]",
            entry.path,
            _action_text(entry),
            str(len(entry.referenced_by_notes)),
            ", ".join(tag.value for tag in entry.tags),
        )

    console.print(table)
    stats = report.stats
    click.echo(
        f"notes: {stats.notes}  attachments: {stats.attachments}  todo: {stats.todo}  "
        f"missing: {stats.missing}  conflicts: {stats.conflicts}  total: {stats.total}"
    )


@cli.command(name="plan")
@click.pass_context
def plan(ctx: click.Context) -> None:
    """Show the conflict-free moves that apply would perform."""
    organizer = _build_organizer(ctx)
    report = organizer.detect_report(force=True)

    if not report.preview:
        click.echo(organizer.explain_no_moves(report))
        return

    console = Console()
    table = Table(title=f"Planned Moves ({len(report.preview)})")
    table.add_column("From", style="cyan", overflow="fold")
    table.add_column("To", style="green", overflow="fold")
    table.add_column("Reason")

    for entry in report.preview:
        table.add_row(entry.virtual_from or "", entry.path, getattr(entry.action, "reason", ""))

    console.print(table)
    if organizer.settings.show_stats:
        click.echo(f"conflicts: {report.stats.conflicts}  missing: {report.stats.missing}")


@cli.command(name="apply")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def apply_cmd(ctx: click.Context, assume_yes: bool) -> None:
    """Move every conflict-free attachment to its planned location."""
    organizer = _build_organizer(ctx)
    confirm: Optional[ConfirmCallback] = None if assume_yes else _prompt_confirm

    summary = organizer.apply_plan(confirm=confirm)
    click.echo(summary.message)
    if summary.failed:
        ctx.exit(1)


@cli.command(name="undo")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def undo_cmd(ctx: click.Context, assume_yes: bool) -> None:
    """Revert the most recently applied batch of moves."""
    organizer = _build_organizer(ctx)
    confirm: Optional[ConfirmCallback] = None if assume_yes else _prompt_confirm

    summary = organizer.undo_last_operation(confirm=confirm)
    click.echo(summary.message)
    for error in summary.errors[:3]:
        click.echo(f"  {error}", err=True)
    if summary.failed:
        ctx.exit(1)


@cli.command(name="init-settings")
@click.pass_context
def init_settings(ctx: click.Context) -> None:
    """Write the effective settings to the vault's settings file."""
    vault_root: Path = ctx.obj["vault"]
    try:
        settings = load_settings(vault_root)
        path = save_settings(settings, vault_root)
    except OrganizerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Settings written to {path}")


def main() -> None:
    cli(obj={})
