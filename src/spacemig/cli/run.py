"""
spacemig CLI - Run command.

Pass a command through to the external migration CLI with credentials
injected and its output streamed to the terminal.
"""

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console

from spacemig.cli.common import get_service, run_async
from spacemig.cli.errors import ExitCode, print_error
from spacemig.core.api.exceptions import ConfigurationError
from spacemig.core.runner.process import (
    CliCredentials,
    CommandResult,
    CommandRunner,
    OutputEvent,
    OutputEventType,
)

console = Console()


def _print_event(event: OutputEvent) -> None:
    if event.type == OutputEventType.STDOUT:
        sys.stdout.write(event.data)
        sys.stdout.flush()
    elif event.type == OutputEventType.STDERR:
        sys.stderr.write(event.data)
        sys.stderr.flush()
    elif event.type == OutputEventType.ERROR:
        console.print(f"[red]{event.data}[/red]", highlight=False)
    else:
        console.print(f"[dim]{event.data}[/dim]", highlight=False)


async def _run(
    runner: CommandRunner,
    args: list[str],
    working_dir: Path,
    credentials: CliCredentials,
) -> CommandResult:
    handle = await runner.start(args, working_dir, credentials, _print_event)
    try:
        return await handle.wait()
    except asyncio.CancelledError:
        handle.kill()
        raise


def run(
    args: list[str] | None = typer.Argument(None, help="Arguments for the external CLI"),
    directory: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Working directory for the external CLI",
        file_okay=False,
    ),
    space: str | None = typer.Option(None, "--space", "-s", help="Space id to pass along"),
    token: str | None = typer.Option(None, "--token", help="Management API token"),
) -> None:
    """
    Run the external migration CLI (sb-mig by default).

    The token and space id are passed as STORYBLOK_OAUTH_TOKEN and
    STORYBLOK_SPACE_ID. Put ``--`` before arguments that start with a dash.

    Examples:
        spacemig run -- sync components --all
        spacemig run --space 12345 -- backup components --all
    """
    service = get_service()
    runner = service.command_runner()

    try:
        oauth_token = service.resolve_token(token)
    except ConfigurationError:
        # the external CLI may have its own credentials
        oauth_token = None

    credentials = CliCredentials(oauth_token=oauth_token, space_id=space)

    try:
        result = run_async(_run(runner, args or [], directory.resolve(), credentials))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)

    if result.error:
        print_error(
            result.error,
            solution=f"npm install -g {runner.executable}  # or set runner.executable",
        )
        raise typer.Exit(ExitCode.USER_ERROR)
    if not result.success:
        code = result.exit_code or 0
        raise typer.Exit(code if code > 0 else ExitCode.GENERAL_ERROR)
