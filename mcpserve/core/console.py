"""Shared Rich Console for diagnostic output.

The console always writes to stderr. stdout belongs to the stdio transport's
protocol stream and must never see anything but JSON-RPC frames.
"""

from __future__ import annotations

from rich.console import Console

_console: Console | None = None


def get_console() -> Console:
    """Get the shared diagnostic Console, creating it on first access."""
    global _console
    if _console is None:
        _console = Console(stderr=True, highlight=False, markup=True)
    return _console


def set_console(console: Console | None) -> None:
    """Set a custom Console instance.

    Useful for testing or custom configurations. None restores the default
    stderr console on next access.
    """
    global _console
    _console = console
