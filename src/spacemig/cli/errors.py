"""
Exit codes and error output shared by the spacemig commands.

Service-layer exceptions are turned into a short red problem line, an
optional reason and a suggested command.
"""

from enum import IntEnum

from rich.console import Console

from spacemig.core.api.exceptions import ConfigurationError, TransportError

console = Console()


class ExitCode(IntEnum):
    """Process exit codes used by every spacemig command."""

    SUCCESS = 0
    """Everything requested was done."""

    GENERAL_ERROR = 1
    """Generic error, including a failed remote call."""

    USER_ERROR = 2
    """Bad input or missing configuration; nothing was attempted."""

    PARTIAL_FAILURE = 3
    """Copy or sync finished but recorded per-item errors."""

    SIGINT = 130
    """Interrupted with Ctrl+C (128 + SIGINT)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a problem line with an optional reason and fix.

    Args:
        problem: What failed, in one line
        reason: Why it failed, printed dimmed
        solution: Command or action that fixes it

    Example:
        >>> print_error(
        ...     "No Management API token configured",
        ...     solution="spacemig settings set oauth_token <token>",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_configuration_error(error: ConfigurationError) -> None:
    """Print an error for a call rejected before any remote work."""
    hint = error.context.get("hint")
    print_error(
        error.message,
        reason="The operation was not started",
        solution=str(hint) if hint else None,
    )


def print_transport_error(error: TransportError) -> None:
    """Print an error for a failed Management API call."""
    reason = None
    if error.method and error.url:
        reason = f"{error.method} {error.url}"
    solution = None
    if error.status_code == 401:
        solution = "check the token with 'spacemig settings get oauth_token'"
    elif error.status_code == 404:
        solution = "check the space id"
    print_error(str(error), reason=reason, solution=solution)


def print_item_errors(title: str, errors: list[str]) -> None:
    """Print an itemised error list under a heading."""
    console.print(f"[yellow]{title}[/yellow] ({len(errors)})")
    for error in errors:
        console.print(f"  [red]•[/red] {error}")
