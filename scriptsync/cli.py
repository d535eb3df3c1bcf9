"""scriptsync CLI — push and pull automation scripts to and from GitHub."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scriptsync import __version__
from scriptsync.errors import SyncError
from scriptsync.models.script_record import ScriptType, SyncResult
from scriptsync.sync.reconciler import Classification, ReconcileReport, ScriptStatus
from scriptsync.sync.versions import BumpKind

console = Console()

_CLASSIFICATION_STYLE = {
    Classification.NEW: "[cyan]new[/]",
    Classification.UPDATE: "[green]update[/]",
    Classification.CONFLICT: "[red]conflict[/]",
    Classification.SKIP: "[dim]up to date[/]",
    Classification.LOCAL_ONLY: "[yellow]local only[/]",
}


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default="scriptsync.yaml", help="Path to the config file")
@click.option("--token", envvar=["SCRIPTSYNC_TOKEN", "GITHUB_TOKEN"], default=None, help="GitHub token")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str, token: str | None, verbose: bool):
    """scriptsync — keep a folder of scripts in sync with a GitHub repository.

    Scripts are versioned in a shared scripts-meta.json document. Pull brings
    newer remote scripts down; push publishes local edits with a version bump.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = {"config_path": config_path, "token": token}


def _open_stores(ctx: click.Context):
    from scriptsync.config import load_config
    from scriptsync.store.local_store import LocalStore
    from scriptsync.store.remote_store import RemoteStore

    try:
        config = load_config(ctx.obj["config_path"], token=ctx.obj["token"])
    except SyncError as e:
        _fail(ctx, e)

    local = LocalStore(config.scripts_dir, config.local_meta_path)
    remote = RemoteStore(config)
    return config, local, remote


def _fail(ctx: click.Context, error: Exception):
    console.print(f"[red]x[/] {escape(str(error))}")
    ctx.exit(1)


# ── Status ───────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show how every remote script compares with the local copy."""
    from scriptsync.sync.pull import PullDriver

    config, local, remote = _open_stores(ctx)
    console.print(f"\n[bold blue]scriptsync[/] — Status of {config.repo_slug}@{config.branch}\n")

    with remote:
        try:
            _, report = PullDriver(local, remote).plan()
        except SyncError as e:
            _fail(ctx, e)

    _print_report(report)


# ── Pull ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Download every new and updated script without asking")
@click.option("--take-remote", multiple=True, help="Overwrite this conflicting local script with the remote copy")
@click.pass_context
def pull(ctx: click.Context, yes: bool, take_remote: tuple):
    """Download new and updated scripts from the remote repository."""
    from scriptsync.sync.prompts import AutoPrompter
    from scriptsync.sync.pull import PullDriver

    config, local, remote = _open_stores(ctx)
    console.print(f"\n[bold blue]scriptsync[/] — Pulling from {config.repo_slug}@{config.branch}\n")

    prompter = AutoPrompter(overwrite=take_remote) if yes else ConsolePrompter(overwrite=take_remote)
    with remote:
        try:
            result = PullDriver(local, remote).run(prompter)
        except SyncError as e:
            _fail(ctx, e)

    _print_result(result, "Update complete")


# ── Push ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("names", nargs=-1)
@click.option("--bump", type=click.Choice([k.value for k in BumpKind]), default=None, help="Version bump for every script")
@click.option("--type", "script_type", type=click.Choice([t.value for t in ScriptType]), default=None,
              help="Type for scripts that were never published")
@click.option("--force", multiple=True, help="Push this script even though it conflicts with the remote copy")
@click.pass_context
def push(ctx: click.Context, names: tuple, bump: str | None, script_type: str | None, force: tuple):
    """Upload local scripts to the remote repository.

    NAMES selects scripts without the interactive menu. Combine with --bump
    (and --type for first-time publishes) to push without any prompt.
    """
    from scriptsync.sync.prompts import AutoPrompter
    from scriptsync.sync.push import PushDriver

    config, local, remote = _open_stores(ctx)
    console.print(f"\n[bold blue]scriptsync[/] — Pushing to {config.repo_slug}@{config.branch}\n")

    if names and bump:
        prompter = AutoPrompter(
            names=list(names) + list(force),
            overwrite=force,
            bump=BumpKind(bump),
            script_type=ScriptType(script_type) if script_type else None,
        )
    else:
        prompter = ConsolePrompter(
            names=names or None,
            overwrite=force,
            bump=BumpKind(bump) if bump else None,
            script_type=ScriptType(script_type) if script_type else None,
        )

    with remote:
        try:
            result = PushDriver(local, remote).run(prompter)
        except SyncError as e:
            _fail(ctx, e)

    _print_result(result, "Upload complete")


# ── Utilities ────────────────────────────────────────────────────────


@main.command(name="hash")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def hash_file(path: str):
    """Print the content hash of a script file."""
    from scriptsync.sync.hashing import compute_hash

    with open(path, encoding="utf-8", newline="") as f:
        console.print(compute_hash(f.read()))


@main.command(name="bump")
@click.argument("version")
@click.argument("kind", type=click.Choice([k.value for k in BumpKind]))
@click.pass_context
def bump_cmd(ctx: click.Context, version: str, kind: str):
    """Print VERSION bumped by KIND."""
    from scriptsync.sync.versions import bump_version

    try:
        console.print(bump_version(version, kind))
    except SyncError as e:
        _fail(ctx, e)


# ── Prompting & output ───────────────────────────────────────────────


class ConsolePrompter:
    """Interactive prompter built on click prompts.

    Answers given on the command line (``names``, ``bump``, ``script_type``,
    ``overwrite``) are used instead of asking.
    """

    def __init__(
        self,
        names: tuple | list | None = None,
        overwrite: tuple | list = (),
        bump: BumpKind | None = None,
        script_type: ScriptType | None = None,
    ):
        self.names = set(names) if names else None
        self.overwrite = set(overwrite)
        self.bump = bump
        self.script_type = script_type

    def select(self, report: ReconcileReport) -> list[str] | None:
        _print_report(report)
        options = report.auto_eligible
        if self.names is not None:
            return [s.name for s in options if s.name in self.names]
        if not options:
            console.print("No possible updates.")
            return []

        for i, s in enumerate(options, 1):
            console.print(f"  [dim]{i}.[/] {s.name} ({s.reason})")
        answer = click.prompt(
            "Select scripts (numbers separated by spaces, 'all', or 'none' to cancel)",
            default="all",
        ).strip()
        if answer.lower() == "none":
            return None
        if answer.lower() == "all":
            return [s.name for s in options]

        chosen = []
        for token in answer.replace(",", " ").split():
            if token.isdigit() and 1 <= int(token) <= len(options):
                chosen.append(options[int(token) - 1].name)
            else:
                console.print(f"[yellow]![/] Ignoring {token!r}")
        return chosen

    def resolve_conflicts(self, conflicts: list[ScriptStatus]) -> list[str]:
        if self.overwrite:
            return [s.name for s in conflicts if s.name in self.overwrite]
        if self.names is not None:
            return []
        return [
            s.name
            for s in conflicts
            if click.confirm(f"{s.name} conflicts ({s.reason}). Overwrite?", default=False)
        ]

    def choose_type(self, name: str) -> ScriptType | None:
        if self.script_type is not None:
            return self.script_type
        choice = click.prompt(
            f"Select type for {name}",
            type=click.Choice([t.value for t in ScriptType] + ["skip"]),
        )
        return None if choice == "skip" else ScriptType(choice)

    def choose_bump(self, name: str, current_version: str) -> BumpKind | None:
        if self.bump is not None:
            return self.bump
        choice = click.prompt(
            f"{name} current: v{current_version}. Version bump",
            type=click.Choice([k.value for k in BumpKind] + ["skip"]),
            default=BumpKind.PATCH.value,
        )
        return None if choice == "skip" else BumpKind(choice)


def _print_report(report: ReconcileReport) -> None:
    if not report.statuses:
        console.print("[yellow]No scripts found.[/]")
        return

    table = Table(title=f"Scripts ({report.summary()})")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Local", justify="right")
    table.add_column("Remote", justify="right")
    table.add_column("Reason")

    for s in report.statuses:
        table.add_row(
            s.name,
            _CLASSIFICATION_STYLE[s.classification],
            s.local_version or "-",
            s.remote_version or "-",
            s.reason,
        )

    console.print(table)
    if not report.auto_eligible and not report.conflicts:
        console.print("[green]All scripts up to date![/]")


def _print_result(result: SyncResult, title: str) -> None:
    if result.cancelled:
        console.print("[yellow]Cancelled.[/]")
        return
    if not result.outcomes:
        console.print("[yellow]No scripts selected.[/]")
        return

    table = Table()
    table.add_column("Script", style="cyan")
    table.add_column("Version", justify="right")
    table.add_column("Result")
    for o in result.outcomes:
        if o.succeeded:
            outcome = "[green]ok[/]"
        elif o.revision_conflict:
            outcome = f"[red]revision conflict[/] {escape(o.error)}"
        else:
            outcome = f"[red]failed[/] {escape(o.error)}"
        table.add_row(o.name, f"v{o.version}" if o.version else "-", outcome)
    console.print(table)

    if result.metadata_error:
        console.print(f"[red]x[/] Metadata not saved: {escape(result.metadata_error)}")
    console.print(Panel(result.summary(), title=title))


if __name__ == "__main__":
    main()
