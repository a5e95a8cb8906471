"""CLI for mnemos."""

from pathlib import Path
from typing import List, Optional
import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core import ChangeType, DiffOutcome
from .errors import MnemosError
from .repository import Repository
from .utils import humanize_date


app = typer.Typer(help="""\
Local snapshot-based version store. Track files, commit point-in-time
snapshots of them, and restore the working set to any earlier commit.""")

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _fail(message: str) -> None:
    console.print(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(1)


def require_repository() -> Repository:
    """Open the enclosing repository.

    Raises:
        typer.Exit: If not inside a repository or its config is invalid
    """
    try:
        return Repository.open()
    except MnemosError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        console.print()
        console.print("To initialize a new repository, run:")
        console.print("  [cyan]mnemos init[/cyan]")
        raise typer.Exit(1)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    _setup_logging(verbose)


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Directory to initialize (default: current directory)"),
):
    """Initialize a repository."""
    try:
        repo = Repository.init(Path(path) if path else None)
    except (MnemosError, OSError) as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Initialized empty mnemos repository in {repo.root}")


@app.command()
def track(
    files: Optional[List[Path]] = typer.Argument(None, help="Files or directories to track"),
    all_files: bool = typer.Option(False, "--all", "-a", help="Track every file not matched by .mnemosignore"),
):
    """Add files or directories to the index.

    Directories are expanded to the files beneath them. Already-tracked
    files are left as they are.

    Examples:
        mnemos track notes.txt          # Track a single file
        mnemos track src/ data/         # Track all files in directories
        mnemos track --all              # Track everything not ignored
    """
    if not files and not all_files:
        _fail("Nothing to track. Pass files or use --all.")

    repo = require_repository()
    added: List[str] = []
    try:
        if all_files:
            added.extend(repo.track_all())
        for file in files or []:
            added.extend(repo.track(file))
    except (MnemosError, ValueError) as e:
        _fail(str(e))

    if added:
        console.print(f"[green]✓[/green] Tracking {len(added)} files:")
        for p in added:
            console.print(f"  [green]+[/green] {escape(p)}")
    else:
        console.print("[yellow]No new files tracked[/yellow]")


@app.command()
def commit(
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
):
    """Snapshot every tracked file into a new commit."""
    repo = require_repository()
    try:
        result = repo.commit(message)
    except MnemosError as e:
        _fail(str(e))

    for p in result.missing:
        console.print(f"[yellow]⚠[/yellow] {escape(p)} is missing; no longer tracked")
    for p in result.rejected:
        console.print(f"[yellow]⚠[/yellow] {escape(repr(p))}: unsupported file name; no longer tracked")
    console.print(f"[green]✓[/green] Committed {result.commit_id} ({result.summary()})")


@app.command()
def revert(
    ref: str = typer.Argument(..., help="Commit id, unique prefix, or HEAD"),
):
    """Restore the working set to an earlier commit.

    Files in the commit are written back; tracked files the commit doesn't
    contain are removed.
    """
    repo = require_repository()
    try:
        result = repo.restore(ref)
    except MnemosError as e:
        _fail(str(e))

    for p, digest in result.missing_objects.items():
        console.print(f"[yellow]⚠[/yellow] {escape(p)}: object {digest[:19]}... is missing, not restored")
    for p in result.rejected:
        console.print(f"[yellow]⚠[/yellow] {escape(p)}: unsafe path, skipped")
    for p in result.blocked:
        console.print(f"[yellow]⚠[/yellow] {escape(p)}: untracked files in the way, not restored")
    for p in result.removed:
        console.print(f"  [red]-[/red] {escape(p)}")
    console.print(f"[green]✓[/green] HEAD is now {result.commit_id} ({result.summary()})")


app.command("restore", help="Alias for revert.")(revert)


@app.command()
def log():
    """List commits, newest first."""
    repo = require_repository()
    commits = repo.log()
    if not commits:
        console.print("[yellow]No commits yet[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("Commit")
    table.add_column("Date")
    table.add_column("Files", justify="right")
    table.add_column("Message")
    for info in commits:
        table.add_row(
            "[green]*[/green]" if info.is_head else "",
            info.short_id,
            humanize_date(info.timestamp),
            str(info.file_count),
            escape(info.message.strip().splitlines()[0]) if info.message.strip() else "",
        )
    console.print(table)


@app.command()
def status():
    """Show tracked files that differ from HEAD."""
    repo = require_repository()
    try:
        summary = repo.status()
    except MnemosError as e:
        _fail(str(e))

    console.print(f"[bold]HEAD:[/bold] {summary.head or '(no commits)'}")
    console.print(f"[bold]Tracked files:[/bold] {summary.total_tracked}")

    if not summary.has_changes:
        console.print("\n[green]✓[/green] Working set matches HEAD")
        return

    icons = {
        ChangeType.ADDED: "[green]+[/green]",
        ChangeType.MODIFIED: "[yellow]M[/yellow]",
        ChangeType.DELETED: "[red]-[/red]",
        ChangeType.REMOVED: "[dim]×[/dim]",
    }
    console.print()
    for change in summary.changed_files:
        console.print(f"  {icons[change.change_type]} {escape(change.path)} [dim]({change.change_type.value})[/dim]")


@app.command()
def diff(
    path: Path = typer.Argument(..., help="File to compare"),
    endpoint_a: str = typer.Argument("HEAD", help="Left commit (default: HEAD)"),
    endpoint_b: Optional[str] = typer.Argument(None, help="Right commit (default: working tree)"),
    tool: Optional[str] = typer.Option(None, "--tool", help="builtin or external (default from config)"),
):
    """Show differences in a file between commits or the working tree.

    Examples:
        mnemos diff notes.txt                 # HEAD vs working tree
        mnemos diff notes.txt 17a3f           # commit vs working tree
        mnemos diff notes.txt 17a3f 17a40     # commit vs commit
    """
    repo = require_repository()
    try:
        report = repo.diff(path, endpoint_a, endpoint_b, tool=tool)
    except (MnemosError, ValueError) as e:
        _fail(str(e))

    if report.outcome == DiffOutcome.ERROR:
        _fail(f"Diff failed: {report.error}")
    if report.outcome == DiffOutcome.IDENTICAL:
        console.print(f"[green]✓[/green] {escape(report.path)}: no differences")
        return

    for line in report.lines:
        if line.startswith(("+++", "---")):
            style = "bold"
        elif line.startswith("+"):
            style = "green"
        elif line.startswith("-"):
            style = "red"
        elif line.startswith("@@"):
            style = "cyan"
        else:
            style = None
        console.print(line, style=style, markup=False, highlight=False)


@app.command()
def remote(
    location: Optional[str] = typer.Argument(None, help="Remote location (host:path or a local path)"),
):
    """Show or set the remote location."""
    repo = require_repository()
    try:
        if location is None:
            console.print(repo.get_remote(), markup=False, highlight=False)
            return
        stored = repo.set_remote(location)
    except (MnemosError, ValueError) as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Remote set to {escape(stored)}")


@app.command()
def send():
    """Copy commits and objects to the remote."""
    repo = require_repository()
    try:
        location = repo.send()
    except MnemosError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Sent to {escape(location)}")


@app.command()
def fetch():
    """Copy commits and objects from the remote."""
    repo = require_repository()
    try:
        location = repo.fetch()
    except MnemosError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Fetched from {escape(location)}")


@app.command("create-remote")
def create_remote(
    location: str = typer.Argument(..., help="Remote location (host:path or a local path)"),
):
    """Create a remote layout and set it as the remote."""
    repo = require_repository()
    try:
        stored = repo.create_remote(location)
    except (MnemosError, ValueError) as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Created remote {escape(stored)}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
