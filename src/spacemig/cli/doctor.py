"""
spacemig CLI - Doctor command.

Check that the external migration CLI can be found and that it accepts
the project's configuration.
"""

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from spacemig.cli.common import get_service, run_async
from spacemig.cli.errors import ExitCode
from spacemig.core.api.exceptions import ConfigurationError
from spacemig.core.runner.process import CliCredentials, CommandRunner, DebugInfo

console = Console()


def check_cli(info: DebugInfo, verbose: bool) -> int:
    """Report where the external CLI was found. Returns the issue count."""
    console.print("\n[bold]External CLI:[/bold]")

    if verbose:
        console.print(f"[dim]Home: {info.home}[/dim]")
        console.print("[dim]Search path:[/dim]")
        for entry in info.extended_path.split(os.pathsep):
            console.print(f"[dim]  {entry}[/dim]")

    if not info.found:
        console.print(f"[red]✗[/red] {info.executable} not found")
        console.print(f"[dim]→ Install: npm install -g {info.executable}[/dim]")
        return 1

    console.print(f"[green]✓[/green] {info.executable} {info.version}")
    console.print(f"[dim]  {info.executable_path}[/dim]")
    if info.error:
        console.print(f"[yellow]![/yellow] {info.error}")
    return 0


def check_credentials(credentials: CliCredentials) -> int:
    console.print("\n[bold]Credentials:[/bold]")
    issues = 0

    if credentials.oauth_token:
        console.print("[green]✓[/green] Management API token")
    else:
        console.print("[red]✗[/red] Management API token not configured")
        console.print("[dim]→ Try: spacemig settings set oauth_token <token>[/dim]")
        issues += 1

    if credentials.space_id:
        console.print(f"[green]✓[/green] Space id {credentials.space_id}")
    else:
        console.print("[dim]ℹ[/dim] No space id given (pass --space to check one)")

    return issues


def check_project(runner: CommandRunner, directory: Path, credentials: CliCredentials, verbose: bool) -> int:
    console.print("\n[bold]Project:[/bold]")
    result = run_async(runner.validate(directory, credentials))

    if result.success:
        console.print(f"[green]✓[/green] {runner.executable} debug succeeded in {directory}")
        if verbose and result.raw_output:
            console.print(result.raw_output.rstrip(), markup=False, highlight=False)
        return 0

    console.print(f"[red]✗[/red] {result.error}")
    if result.raw_output:
        console.print(result.raw_output.rstrip(), style="dim", markup=False, highlight=False)
    return 1


def doctor(
    directory: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Project directory to validate",
        file_okay=False,
    ),
    space: str | None = typer.Option(None, "--space", "-s", help="Space id to pass along"),
    token: str | None = typer.Option(None, "--token", help="Management API token"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show the search path and the CLI's debug output",
    ),
) -> None:
    """
    Diagnose the external CLI setup.

    Checks:
    - The external CLI is found on the extended PATH
    - A Management API token is configured
    - ``<cli> debug`` succeeds in the project directory

    Examples:
        spacemig doctor
        spacemig doctor --space 12345 --verbose
    """
    service = get_service()
    runner = service.command_runner()
    directory = directory.resolve()

    console.print(Panel("[bold]spacemig doctor[/bold]", expand=False))

    try:
        oauth_token = service.resolve_token(token)
    except ConfigurationError:
        oauth_token = None
    credentials = CliCredentials(oauth_token=oauth_token, space_id=space)

    info = run_async(runner.debug_info())
    issues = check_cli(info, verbose)
    issues += check_credentials(credentials)
    if info.found:
        issues += check_project(runner, directory, credentials, verbose)

    console.print()
    if issues:
        console.print(f"[yellow]![/yellow] Found {issues} issue(s)")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print("[green]✓[/green] No issues found")
