"""Argument parsing for the mcpserve CLI."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from mcpserve import __version__

TRANSPORT_CHOICES = ("stdio", "sse", "streamable-http")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mcpserve",
        description="Serve an MCP capability provider over stdio, HTTP+SSE, or streamable HTTP",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Config file (default: ./mcpserve.json when present)",
    )
    parser.add_argument(
        "--transport", "-t",
        choices=TRANSPORT_CHOICES,
        help="Transport binding (overrides config and MCPSERVE_TRANSPORT)",
    )
    parser.add_argument(
        "--host",
        help="Interface for the HTTP transports (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port for the HTTP transports (default: 3000; 0 picks a free port)",
    )
    parser.add_argument(
        "--provider",
        metavar="MODULE:ATTR",
        help="Capability provider instance, or factory taking a ServerConfig "
        "(default: the built-in demo provider)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logs on stderr",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Also write logs to DIR/server.log (rotated)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)
