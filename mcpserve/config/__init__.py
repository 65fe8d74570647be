"""Configuration loading and validation."""

from mcpserve.config.loader import load_config
from mcpserve.config.schema import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    AuthConfig,
    Config,
    LoggingConfig,
    ServerConfig,
    TransportType,
)

__all__ = [
    "load_config",
    "Config",
    "ServerConfig",
    "AuthConfig",
    "LoggingConfig",
    "TransportType",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
]
