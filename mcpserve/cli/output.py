"""Rich-based output utilities for the mcpserve CLI.

Everything goes to the shared stderr console; stdout is reserved for the
stdio transport.
"""

from mcpserve.core.console import get_console


def print_error(message: str) -> None:
    """Print an error message in red.

    Args:
        message: The error message to display.
    """
    get_console().print(f"[bold red]Error:[/bold red] {message}")


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]Warning:[/yellow] {message}")


def print_info(message: str) -> None:
    """Print an informational message.

    Args:
        message: The info message to display.
    """
    get_console().print(f"[dim]{message}[/dim]")
