"""
spacemig CLI - Settings commands.

Read and write the local settings store.
"""

import typer
from rich.console import Console
from rich.table import Table

from spacemig.cli.common import get_settings_store
from spacemig.cli.errors import ExitCode, print_error

console = Console()
app = typer.Typer(
    name="settings",
    help="Manage saved settings (token, defaults)",
    no_args_is_help=True,
)


def _mask(key: str, value: str) -> str:
    if "token" not in key or len(value) <= 4:
        return value
    return value[:4] + "…"


@app.command()
def get(key: str = typer.Argument(..., help="Setting name")) -> None:
    """Print a setting's value."""
    value = get_settings_store().get_setting(key)
    if value is None:
        print_error(f"Setting not found: {key}", solution="spacemig settings list")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(value, markup=False, highlight=False)


@app.command("set")
def set_(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="Value to store"),
) -> None:
    """
    Save a setting.

    Examples:
        spacemig settings set oauth_token <token>
    """
    get_settings_store().set_setting(key, value)
    console.print(f"[green]✓[/green] Saved {key}")


@app.command()
def delete(key: str = typer.Argument(..., help="Setting name")) -> None:
    """Remove a setting."""
    get_settings_store().delete_setting(key)
    console.print(f"[green]✓[/green] Removed {key}")


@app.command("list")
def list_() -> None:
    """List saved settings. Token values are shortened."""
    settings = get_settings_store().all_settings()
    if not settings:
        console.print("[dim]No settings saved[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.items():
        table.add_row(key, _mask(key, value))
    console.print(table)
