"""Demo capability provider served by default."""

from mcpserve.demo.provider import DemoProvider

__all__ = ["DemoProvider"]
