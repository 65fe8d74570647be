"""UTF-8 encoding constants and helpers for mcpserve."""

import sys

# Encoding constants
ENCODING = "utf-8"
ENCODING_ERRORS = "replace"  # Preserve data, mark corruption


def configure_stdio() -> None:
    """Reconfigure stderr to UTF-8 with replace error handling.

    stdin and stdout are left alone: the stdio transport reads and writes
    their binary buffers directly, and JSON-RPC frames are always UTF-8.
    """
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding=ENCODING, errors=ENCODING_ERRORS)
