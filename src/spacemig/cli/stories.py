"""
spacemig CLI - Stories commands.

Show a space's content tree and copy stories between spaces.
"""

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.tree import Tree

from spacemig.cli.common import get_service, run_async
from spacemig.cli.errors import (
    ExitCode,
    print_configuration_error,
    print_item_errors,
    print_transport_error,
)
from spacemig.core.api.exceptions import ConfigurationError, TransportError
from spacemig.core.content.models import ContentTreeNode
from spacemig.core.replicate.models import CopyProgress

console = Console()
app = typer.Typer(
    name="stories",
    help="Inspect and copy stories",
    no_args_is_help=True,
)


def _label(node: ContentTreeNode) -> str:
    record = node.record
    icon = "📁" if record.is_folder else "📄"
    slug = record.full_slug or record.slug
    return f"{icon} [bold]{record.name}[/bold] [dim]{slug} (id {record.id})[/dim]"


def _add_nodes(parent: Tree, nodes: list[ContentTreeNode]) -> None:
    for node in nodes:
        branch = parent.add(_label(node))
        _add_nodes(branch, node.children)


@app.command()
def tree(
    space: str = typer.Option(..., "--space", "-s", help="Space id to read"),
    token: str | None = typer.Option(None, "--token", help="Management API token"),
) -> None:
    """
    Show every story of a space as a tree.

    Folders are listed before stories, then by position and name.

    Examples:
        spacemig stories tree --space 12345
    """
    service = get_service()

    try:
        result = run_async(service.fetch_content_tree(space, token))
    except ConfigurationError as e:
        print_configuration_error(e)
        raise typer.Exit(ExitCode.USER_ERROR)
    except TransportError as e:
        print_transport_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not result.tree:
        console.print(f"[dim]Space {space} has no stories[/dim]")
        return

    root = Tree(f"[bold]Space {space}[/bold] [dim]({result.total} stories)[/dim]")
    _add_nodes(root, result.tree)
    console.print(root)


@app.command()
def copy(
    story_ids: list[int] = typer.Argument(..., help="Ids of the stories to copy"),
    source: str = typer.Option(..., "--from", help="Source space id"),
    target: str = typer.Option(..., "--to", help="Target space id"),
    parent: int | None = typer.Option(
        None,
        "--parent",
        help="Folder id in the target space to copy under (default: root)",
    ),
    token: str | None = typer.Option(None, "--token", help="Management API token"),
) -> None:
    """
    Copy stories to another space, keeping their hierarchy.

    A selected story whose parent is also selected is created under the
    parent's copy. Stories whose parent failed to copy are not attempted.

    Examples:
        spacemig stories copy 10 11 12 --from 12345 --to 67890
        spacemig stories copy 10 --from 12345 --to 67890 --parent 555
    """
    service = get_service()

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=len(story_ids))

        def on_progress(event: CopyProgress) -> None:
            progress.update(
                task,
                description=event.current_item,
                completed=event.current,
                total=event.total,
            )

        try:
            result = run_async(
                service.copy_content(source, target, story_ids, parent, token, on_progress)
            )
        except ConfigurationError as e:
            progress.stop()
            print_configuration_error(e)
            raise typer.Exit(ExitCode.USER_ERROR)

    if result.success:
        console.print(f"[green]✓[/green] {result.summary()}")
        return

    console.print(f"[yellow]⚠[/yellow]  {result.summary()}")
    print_item_errors("Errors", result.errors)
    raise typer.Exit(ExitCode.PARTIAL_FAILURE)
