"""Shared pytest fixtures for mcpserve tests."""

import io
from collections.abc import Iterator

import pytest
from rich.console import Console

from mcpserve.config.schema import AuthConfig, ServerConfig
from mcpserve.core.console import set_console
from mcpserve.demo.provider import DemoProvider


@pytest.fixture
def console() -> Iterator[Console]:
    """Console writing to an in-memory buffer, installed as the shared console."""
    test_console = Console(file=io.StringIO(), force_terminal=False, width=120)
    set_console(test_console)
    yield test_console
    set_console(None)


@pytest.fixture
def demo_provider() -> DemoProvider:
    return DemoProvider(ServerConfig(name="test-server", version="1.2.3"))


@pytest.fixture
def http_provider() -> DemoProvider:
    """Demo provider configured for an HTTP transport on an ephemeral port."""
    return DemoProvider(
        ServerConfig(name="test-server", version="1.2.3", transport="sse", port=0)
    )


@pytest.fixture
def oauth_provider() -> DemoProvider:
    return DemoProvider(
        ServerConfig(
            name="test-server",
            version="1.2.3",
            transport="streamable-http",
            port=0,
            auth=AuthConfig(type="oauth", client_id="client-1"),
        )
    )
