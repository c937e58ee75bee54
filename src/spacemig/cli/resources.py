"""
spacemig CLI - Discover and sync commands.

Find local resource definitions and reconcile them with a space.
"""

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from spacemig.cli.common import get_service, run_async
from spacemig.cli.errors import (
    ExitCode,
    print_configuration_error,
    print_error,
    print_item_errors,
)
from spacemig.core.api.exceptions import ConfigurationError
from spacemig.core.discovery.models import ResourceKind
from spacemig.core.sync.models import SyncEventType, SyncOptions, SyncProgressEvent

console = Console()


def discover(
    kind: ResourceKind = typer.Argument(..., help="Resource kind to look for"),
    directory: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Project root to scan",
        file_okay=False,
    ),
) -> None:
    """
    List local resource definition files.

    Components are looked for in the project's componentsDirectories (or
    src, components and storyblok); datasources and roles anywhere below
    the project root.

    Examples:
        spacemig discover components
        spacemig discover datasources --dir ./site
    """
    service = get_service()
    resources = service.discover(kind, directory.resolve())

    if not resources:
        console.print(f"[dim]No {kind.value} found in {directory}[/dim]")
        return

    table = Table(title=f"{kind.value.capitalize()} ({len(resources)})")
    table.add_column("Name", style="cyan")
    table.add_column("Origin")
    table.add_column("File", style="dim")

    for resource in resources:
        origin = "[yellow]external[/yellow]" if resource.is_external else "local"
        table.add_row(resource.name, origin, str(resource.file_path))

    console.print(table)


def _plugin_items(paths: list[Path]) -> tuple[list[dict[str, Any]], list[str]]:
    """Read built plugin bundles as ``{name, body}`` items."""
    items: list[dict[str, Any]] = []
    errors: list[str] = []
    for path in paths:
        try:
            body = path.read_text(encoding="utf-8")
        except OSError as e:
            errors.append(f"{path}: {e}")
            continue
        items.append({"name": path.name.split(".")[0], "body": body})
    return items, errors


def sync(
    kind: ResourceKind = typer.Argument(..., help="Resource kind to sync"),
    names: list[str] | None = typer.Argument(
        None, help="Only sync these names (default: everything discovered)"
    ),
    space: str = typer.Option(..., "--space", "-s", help="Target space id"),
    directory: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Project root to scan",
        file_okay=False,
    ),
    token: str | None = typer.Option(None, "--token", help="Management API token"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would change without writing"
    ),
    presets: bool = typer.Option(False, "--presets", help="Components: also sync presets"),
    ssot: bool = typer.Option(
        False, "--ssot", help="Components: always overwrite with the local definition"
    ),
    no_entries: bool = typer.Option(
        False, "--no-entries", help="Datasources: leave datasource entries alone"
    ),
    plugin: list[Path] | None = typer.Option(
        None,
        "--plugin",
        help="Plugins: built bundle file to publish (repeatable)",
        dir_okay=False,
    ),
) -> None:
    """
    Create or update resource definitions in a space.

    Items that already match the remote state are skipped. Failures are
    reported per item and do not stop the others.

    Examples:
        spacemig sync components --space 12345
        spacemig sync components hero teaser --space 12345 --presets
        spacemig sync datasources --space 12345 --dry-run
        spacemig sync plugins --space 12345 --plugin dist/my-plugin.js
    """
    service = get_service()
    load_errors: list[str] = []

    if kind == ResourceKind.PLUGINS:
        if not plugin:
            print_error(
                "No plugin bundles given",
                reason="Plugins are not discovered from the project",
                solution="spacemig sync plugins --space <id> --plugin dist/plugin.js",
            )
            raise typer.Exit(ExitCode.USER_ERROR)
        items, load_errors = _plugin_items(plugin)
    else:
        resources = service.discover(kind, directory.resolve())
        if names:
            wanted = set(names)
            missing = wanted - {r.name for r in resources}
            load_errors.extend(f"{name}: not found locally" for name in sorted(missing))
            resources = [r for r in resources if r.name in wanted]
        items, failures = service.load_resources(resources)
        load_errors.extend(str(e) for e in failures)

    if not items and not load_errors:
        console.print(f"[dim]No {kind.value} to sync[/dim]")
        return

    options = SyncOptions(dry_run=dry_run, presets=presets, ssot=ssot, entries=not no_entries)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Syncing {kind.value}...", total=len(items))

        def on_progress(event: SyncProgressEvent) -> None:
            if event.type == SyncEventType.PROGRESS and event.action is not None:
                progress.update(
                    task,
                    description=f"{event.action.value} {event.name}",
                    completed=event.current or 0,
                )
            elif event.type == SyncEventType.COMPLETE:
                progress.update(task, description="Complete", completed=event.current or 0)

        try:
            outcome = run_async(service.sync(kind, space, token, items, options, on_progress))
        except ConfigurationError as e:
            progress.stop()
            print_configuration_error(e)
            raise typer.Exit(ExitCode.USER_ERROR)

    title = f"{kind.value.capitalize()} sync"
    if dry_run:
        title += " (dry run)"
    table = Table(title=title, show_header=False, box=None)
    table.add_column("Result", style="cyan", no_wrap=True)
    table.add_column("Names")
    table.add_row("[green]created[/green]", ", ".join(outcome.created) or "-")
    table.add_row("[blue]updated[/blue]", ", ".join(outcome.updated) or "-")
    table.add_row("skipped", ", ".join(outcome.skipped) or "-")
    console.print(table)
    console.print(outcome.summary())

    errors = load_errors + [f"{e.name}: {e.message}" for e in outcome.errors]
    if errors:
        print_item_errors("Errors", errors)
        raise typer.Exit(ExitCode.PARTIAL_FAILURE)
