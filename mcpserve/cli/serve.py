"""Server entry point for mcpserve.

Loads configuration, builds the capability provider and the configured
transport, then serves until the transport stops (end of stdin for stdio) or
the process receives SIGINT/SIGTERM.

Example:
    python -m mcpserve --transport streamable-http --port 3000

    curl -X POST http://localhost:3000/mcp \\
        -H "Content-Type: application/json" \\
        -d '{"jsonrpc":"2.0","method":"tools/list","id":1}'
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import inspect
import logging
import signal
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from mcpserve.cli.arg_parser import parse_args
from mcpserve.cli.bootstrap import configure_logging
from mcpserve.cli.output import print_error, print_info, print_warning
from mcpserve.config.loader import load_config
from mcpserve.config.schema import ServerConfig
from mcpserve.core.encoding import configure_stdio
from mcpserve.core.errors import ConfigError, TransportError
from mcpserve.demo.provider import DemoProvider
from mcpserve.rpc.provider import CapabilityProvider
from mcpserve.transport.detection import PROBE_PATHS, DetectionResult, detect_server
from mcpserve.transport.factory import create_transport

logger = logging.getLogger(__name__)

# Exit codes for failures before serving starts
EXIT_CONFIG_ERROR = 2
EXIT_START_ERROR = 1


def load_provider(target: str | None, config: ServerConfig) -> CapabilityProvider:
    """Resolve ``module:attr`` to a capability provider.

    ``attr`` may name a provider instance, or a class/function that takes the
    ServerConfig and returns one. None selects the demo provider.

    Raises:
        ConfigError: If the target cannot be imported or is not a provider.
    """
    if target is None:
        return DemoProvider(config)

    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"Invalid provider '{target}': expected module:attr")

    try:
        obj: object = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import provider module '{module_name}': {e}") from e

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"Provider '{target}' not found: {e}") from e

    if inspect.isclass(obj) or inspect.isfunction(obj):
        obj = obj(config)

    if not isinstance(obj, CapabilityProvider):
        raise ConfigError(
            f"Provider '{target}' must define get_config, get_tools, "
            "get_resources and handle_tool_call"
        )
    return obj


async def _check_port(config: ServerConfig) -> bool:
    """Return False if something already answers on the configured port."""
    if config.transport not in PROBE_PATHS or config.port == 0:
        return True

    result = await detect_server(config.port, config.host, PROBE_PATHS[config.transport])
    if result == DetectionResult.MCP_SERVER:
        print_error(f"MCP server already running on port {config.port}")
        return False
    elif result == DetectionResult.OTHER_SERVICE:
        print_error(f"Port {config.port} is already in use by another service")
        return False
    elif result in (DetectionResult.TIMEOUT, DetectionResult.ERROR):
        print_warning(f"Could not check port {config.port} ({result.value}), starting anyway")
    return True


async def run_serve(args: argparse.Namespace) -> int:
    """Serve until the transport stops or a stop signal arrives.

    Returns:
        Process exit code. 0 after a normal stop, as reported by the
        transport's shutdown hook.
    """
    exit_code = 0

    def on_shutdown(code: int) -> None:
        nonlocal exit_code
        exit_code = code

    try:
        config = load_config(
            args.config,
            overrides={"transport": args.transport, "host": args.host, "port": args.port},
        )
        provider = load_provider(args.provider, config.server)
    except ConfigError as e:
        print_error(f"Configuration error: {e.message}")
        return EXIT_CONFIG_ERROR

    log_dir = args.log_dir
    if log_dir is None and config.logging.dir is not None:
        log_dir = Path(config.logging.dir)
    log_file = configure_logging(
        level=getattr(logging, config.logging.level),
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
        log_dir=log_dir,
    )

    server_config = provider.get_config()
    if not await _check_port(server_config):
        return EXIT_START_ERROR

    try:
        transport = create_transport(provider, shutdown=on_shutdown)
    except ConfigError as e:
        print_error(f"Configuration error: {e.message}")
        return EXIT_CONFIG_ERROR

    # Handlers are live before the started message is printed
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            pass  # Windows: KeyboardInterrupt cancels the run instead

    try:
        try:
            await transport.start()
        except TransportError as e:
            print_error(e.message)
            return EXIT_START_ERROR

        if log_file is not None:
            print_info(f"Server log: {log_file}")
        logger.info(
            "Serving %s %s over %s", server_config.name, server_config.version, transport.name
        )

        stop_wait = asyncio.create_task(stop_requested.wait())
        stopped_wait = asyncio.create_task(transport.wait_stopped())
        try:
            await asyncio.wait({stop_wait, stopped_wait}, return_when=asyncio.FIRST_COMPLETED)
            if stop_requested.is_set():
                logger.info("Stop signal received, shutting down")
        finally:
            stop_wait.cancel()
            stopped_wait.cancel()
            await transport.stop()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point."""
    configure_stdio()
    load_dotenv()

    args = parse_args(argv)
    try:
        return asyncio.run(run_serve(args))
    except KeyboardInterrupt:
        return 130
