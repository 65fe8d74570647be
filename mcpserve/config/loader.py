"""Configuration loading with fail-fast behavior.

Configuration precedence (highest to lowest):
1. Explicit overrides passed by the caller (CLI flags)
2. Environment variables (MCPSERVE_TRANSPORT, MCPSERVE_HOST, MCPSERVE_PORT)
3. The config file (explicit path, or ./mcpserve.json when present)
4. Pydantic defaults

Any problem (missing explicit file, invalid JSON, failed validation) raises
ConfigError before a transport is created.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mcpserve.config.load_utils import load_json_file, load_json_file_optional
from mcpserve.config.schema import Config
from mcpserve.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "mcpserve.json"

# Environment variable -> server config field
ENV_OVERRIDES = {
    "MCPSERVE_TRANSPORT": "transport",
    "MCPSERVE_HOST": "host",
    "MCPSERVE_PORT": "port",
}


def load_config(
    path: Path | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """Load and validate configuration.

    Args:
        path: Explicit config file path. Must exist if given.
        cwd: Directory searched for mcpserve.json when path is None.
            Defaults to Path.cwd().
        env: Environment mapping for overrides. Defaults to os.environ.
        overrides: Server field overrides that win over everything else
            (None values are ignored).

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file is unreadable, not a JSON object, or the
            merged configuration fails validation.
    """
    if path is not None:
        data = load_json_file(path)
        source = str(path)
    else:
        default_path = (cwd or Path.cwd()) / DEFAULT_CONFIG_NAME
        loaded = load_json_file_optional(default_path)
        if loaded is None:
            data, source = {}, "defaults"
        else:
            data, source = loaded, str(default_path)

    server = dict(data.get("server") or {})
    for var, field in ENV_OVERRIDES.items():
        value = (env if env is not None else os.environ).get(var)
        if value:
            server[field] = value
    for field, value in (overrides or {}).items():
        if value is not None:
            server[field] = value
    if server:
        data = {**data, "server": server}

    logger.debug("Config loaded from: %s", source)

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed ({source}): {e}") from e
