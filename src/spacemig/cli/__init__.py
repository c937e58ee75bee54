"""
spacemig CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from rich.console import Console

from spacemig import __version__
from spacemig.cli import doctor, resources, run, settings, stories
from spacemig.cli.common import get_service, run_async, setup_logging
from spacemig.core.config.env import load_layered_env

PANEL_CONTENT = "Move Content"
PANEL_RESOURCES = "Sync Resources"
PANEL_INSTALL = "Manage spacemig"

app = typer.Typer(
    name="spacemig",
    help="Copy stories between spaces and sync component, datasource, role and plugin definitions",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    spacemig - content migration between spaces.

    Quick Start:
        1. spacemig settings set oauth_token <token>
        2. spacemig stories tree --space 12345
        3. spacemig stories copy 10 11 --from 12345 --to 67890

    Resources:
        spacemig discover components
        spacemig sync components --space 12345 --dry-run
    """
    setup_logging(debug)
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    ctx.obj = {"debug": debug}


# =============================================================================
# Move Content
# =============================================================================

app.add_typer(stories.app, name="stories", rich_help_panel=PANEL_CONTENT)

# =============================================================================
# Sync Resources
# =============================================================================

app.command(name="discover", rich_help_panel=PANEL_RESOURCES)(resources.discover)
app.command(name="sync", rich_help_panel=PANEL_RESOURCES)(resources.sync)
app.command(
    name="run",
    rich_help_panel=PANEL_RESOURCES,
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(run.run)

# =============================================================================
# Manage spacemig
# =============================================================================

app.add_typer(settings.app, name="settings", rich_help_panel=PANEL_INSTALL)
app.command(name="doctor", rich_help_panel=PANEL_INSTALL)(doctor.doctor)


@app.command(rich_help_panel=PANEL_INSTALL)
def version() -> None:
    """Show spacemig version and the external CLI version."""
    console.print(f"spacemig version {__version__}")
    runner = get_service().command_runner()
    external = run_async(runner.version())
    if external is None:
        console.print(f"[dim]{runner.executable}: not installed[/dim]")
    else:
        console.print(f"{runner.executable} {external}")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
