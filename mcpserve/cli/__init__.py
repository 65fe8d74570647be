"""Command-line interface for mcpserve."""
