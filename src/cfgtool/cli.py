"""Command line interface for cfgtool."""

from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.changes import ChangeRecord
from .core.config import Config
from .core.errors import CfgtoolError, UnsyncedChanges
from .core.logging import setup_logging
from .core.orchestrator import SyncOrchestrator
from .core.remote import SyncState

console = Console()


def _orchestrator(ctx: click.Context) -> SyncOrchestrator:
    """Build the orchestrator once per invocation."""
    obj = ctx.ensure_object(dict)
    if "orchestrator" not in obj:
        try:
            obj["orchestrator"] = SyncOrchestrator(obj["config"])
        except CfgtoolError as e:
            _fail(e)
    return obj["orchestrator"]


def _fail(error: CfgtoolError) -> NoReturn:
    console.print(f"[red]Error: {escape(str(error))}", soft_wrap=True)
    raise click.Abort()


@click.group()
@click.version_option(__version__, prog_name="cfgtool")
@click.option(
    "--home",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    help="Home directory to mirror (defaults to your home directory)",
)
@click.option(
    "--store",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory of the versioned store (defaults to the user data directory)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file (defaults to the user config directory)",
)
@click.option("--debug", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    home: Optional[Path],
    store: Optional[Path],
    config_file: Optional[Path],
    debug: bool,
) -> None:
    """A simple git wrapper to manage your dotfiles.

    Tracked files are copied from your home directory into a git repository,
    committed, and synced with a remote.

    Main commands:

      track     Start tracking a file
      update    Commit changes made to tracked files
      sync      Pull from and push to the remote
      status    List tracked files and pending changes
      remote    Manage the remote used for syncing
      log       Show the history of the store
      rollback  Restore a file to a previous version

    Run 'cfgtool COMMAND --help' for more information on a specific command.
    """
    try:
        config = Config.from_file(
            config_file, home_dir=home, store_dir=store, debug=debug or None
        )
    except CfgtoolError as e:
        _fail(e)

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Config error: {escape(error)}")
        raise click.Abort()

    setup_logging(debug=config.debug, log_file=config.log_file)
    ctx.ensure_object(dict)["config"] = config


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--message", "-m", help="Commit message (defaults to 'Tracked file <name>')")
@click.pass_context
def track(ctx: click.Context, path: Path, message: Optional[str]) -> None:
    """Track a file with cfgtool.

    PATH must be a regular file below your home directory.

    Examples:

      cfgtool track ~/.bashrc

      cfgtool track ~/.config/nvim/init.lua -m "Add neovim config"
    """
    try:
        result = _orchestrator(ctx).track(path, message)
    except CfgtoolError as e:
        _fail(e)

    if result.already_tracked:
        console.print(f"[yellow]{escape(str(result.relative_path))} is already tracked")
    else:
        console.print(f"[green]Tracking {escape(str(result.relative_path))}")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Commit every change with the default message")
@click.pass_context
def update(ctx: click.Context, yes: bool) -> None:
    """Commit changes made to tracked files.

    For every tracked file whose home copy differs from the store you are
    asked whether to commit it and with which message.
    """

    def decide(change: ChangeRecord) -> Optional[str]:
        default = f"Updated {change.name}"
        if yes:
            return default
        console.print(f"[bold]{escape(str(change.home_path))} has changed")
        if not click.confirm("Commit this change?", default=True):
            return None
        return click.prompt("Commit message", default=default)

    try:
        results = _orchestrator(ctx).update(decide)
    except CfgtoolError as e:
        _fail(e)

    if not results:
        console.print("[yellow]Nothing to update.")
        return
    for result in results:
        console.print(f"[green]Committed {escape(str(result.relative_path))}")


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Sync even if tracked files changed locally")
@click.pass_context
def sync(ctx: click.Context, force: bool) -> None:
    """Sync your dotfiles with a remote.

    Fetches the remote main branch, fast-forwards the store when possible,
    pushes, and copies files changed by the pull into your home directory.
    Diverged histories are never merged.
    """
    orchestrator = _orchestrator(ctx)
    if orchestrator.syncer.get_default_remote() is None:
        if not click.confirm("No remote configured. Add one now?", default=True):
            raise click.Abort()
        url = click.prompt("Remote URL")
        try:
            orchestrator.syncer.add_remote(orchestrator.config.remote_name, url)
        except CfgtoolError as e:
            _fail(e)

    try:
        result = orchestrator.sync(force=force)
    except UnsyncedChanges as e:
        for change in e.changes:
            console.print(f"[yellow]Changed: {escape(str(change.home_path))}", soft_wrap=True)
        _fail(e)
    except CfgtoolError as e:
        _fail(e)

    if result.remote_was_empty:
        console.print(f"[bold]Remote {result.remote} was empty, pushed the store")
    elif result.pull and result.pull.state is SyncState.BEHIND:
        console.print(f"[bold]Fast-forwarded from {result.remote}")
    for path in result.restored:
        console.print(f"[green]Restored {escape(str(path))}")
    console.print(f"[green]Synced with {result.remote}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """List tracked files and whether they changed."""
    orchestrator = _orchestrator(ctx)
    try:
        report = orchestrator.status()
        changed = {change.relative_path for change in orchestrator.pending_changes()}
    except CfgtoolError as e:
        _fail(e)

    if report.empty:
        console.print("[yellow]No files tracked yet.")
        return

    table = Table(title=f"Tracked files ({report.store_root})")
    table.add_column("File", style="cyan")
    table.add_column("Status", style="green")
    for entry in report.entries:
        state = "[yellow]changed" if entry.relative_path in changed else "up to date"
        table.add_row(escape(f"~/{entry.relative_path.as_posix()}"), state)
    console.print(table)


@cli.group()
def remote() -> None:
    """Manage the remote used for syncing."""


@remote.command("add")
@click.argument("name")
@click.argument("url")
@click.pass_context
def remote_add(ctx: click.Context, name: str, url: str) -> None:
    """Add a remote, or change the URL of an existing one."""
    orchestrator = _orchestrator(ctx)
    try:
        orchestrator.syncer.add_remote(name, url)
    except CfgtoolError as e:
        _fail(e)
    console.print(f"[green]Remote {name} set to {escape(url)}")


@remote.command("list")
@click.pass_context
def remote_list(ctx: click.Context) -> None:
    """List remotes; the default one is marked with '*'."""
    orchestrator = _orchestrator(ctx)
    try:
        remotes = orchestrator.syncer.remotes()
        default = orchestrator.syncer.get_default_remote()
    except CfgtoolError as e:
        _fail(e)

    if not remotes:
        console.print("[yellow]No remotes configured.")
        return
    for entry in remotes:
        marker = "*" if entry.name == default else " "
        console.print(f"{marker} {entry.name}\t{escape(entry.url)}")


@cli.command()
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option("--limit", "-n", default=20, show_default=True, help="Number of commits to show")
@click.pass_context
def log(ctx: click.Context, path: Optional[Path], limit: int) -> None:
    """Show the history of the store, or of one tracked file."""
    try:
        entries = _orchestrator(ctx).history(path, limit=limit)
    except CfgtoolError as e:
        _fail(e)

    if not entries:
        console.print("[yellow]No history yet.")
        return

    table = Table(title="History")
    table.add_column("Commit", style="yellow", no_wrap=True)
    table.add_column("Date", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Message")
    for entry in entries:
        table.add_row(entry.short_sha, entry.date, escape(entry.author), escape(entry.message))
    console.print(table)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("revision")
@click.option("--message", "-m", help="Commit message for the rollback")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def rollback(
    ctx: click.Context, path: Path, revision: str, message: Optional[str], yes: bool
) -> None:
    """Rollback a file to a previous version.

    The store copy is restored to REVISION, committed, and written over the
    file in your home directory. Use 'cfgtool log PATH' to find revisions.
    """
    if not yes and not click.confirm(f"Overwrite {path} with its version at {revision}?"):
        raise click.Abort()
    try:
        result = _orchestrator(ctx).rollback(path, revision, message)
    except CfgtoolError as e:
        _fail(e)
    console.print(f"[green]Rolled back {escape(str(result.relative_path))}")


def main() -> None:
    """Entry point for the cfgtool CLI."""
    cli()


if __name__ == "__main__":
    main()
