"""Pydantic models for mcpserve configuration validation."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Supported transport bindings
TransportType = Literal["stdio", "sse", "streamable-http"]

DEFAULT_PORT = 3000
DEFAULT_HOST = "127.0.0.1"


class AuthConfig(BaseModel):
    """Authentication settings for the HTTP transports.

    Only ``type == "oauth"`` has an effect today: it mounts the OAuth
    consent and token endpoints on the streamable-HTTP transport.

    Example in mcpserve.json:
        "auth": {
            "type": "oauth",
            "clientId": "my-client",
            "redirectUri": "http://localhost:8080/callback"
        }
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: Literal["oauth", "api-key", "none"] = "none"
    """Authentication scheme: oauth, api-key, none."""

    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret")
    redirect_uri: str | None = Field(default=None, alias="redirectUri")


class ServerConfig(BaseModel):
    """Identity and binding of the MCP server.

    The capability provider hands this object to the transport layer through
    ``get_config()``. ``name`` and ``version`` are echoed in ``initialize``
    responses; ``transport`` selects the adapter.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = "mcpserve"
    """Server name reported in serverInfo."""

    version: str = "0.1.0"
    """Server version reported in serverInfo."""

    description: str | None = None

    transport: TransportType = "stdio"
    """Transport binding: stdio, sse, streamable-http."""

    host: str = DEFAULT_HOST
    """Interface the HTTP transports bind to."""

    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    """Port for the HTTP transports (0 picks an ephemeral port)."""

    auth: AuthConfig | None = None

    @field_validator("name", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @property
    def oauth_enabled(self) -> bool:
        """True when the OAuth endpoints should be mounted."""
        return self.auth is not None and self.auth.type == "oauth"


class LoggingConfig(BaseModel):
    """Logging settings."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    dir: str | None = None
    """Directory for a rotating server.log; None logs to stderr only."""


class Config(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
