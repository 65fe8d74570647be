"""Placeholder OAuth endpoints for the streamable-HTTP transport.

Mounted when ``auth.type == "oauth"``. This is a stub for local development
clients that insist on an OAuth dance: codes and tokens are random strings,
nothing is stored, and MCP requests are not checked against issued tokens.

Routes:
    GET  /oauth/authorize  Consent page (HTML form)
    POST /oauth/authorize  Consent decision, redirects back to the client
    POST /oauth/token      Token exchange
"""

from __future__ import annotations

import html
import json
import logging
import secrets
import string
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from mcpserve.transport.http import HttpRequest, send_http_response, send_json

if TYPE_CHECKING:
    import asyncio

    from mcpserve.transport.http import HttpServerTransport

logger = logging.getLogger(__name__)

TOKEN_LIFETIME_SECONDS = 3600
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits

CONSENT_PAGE = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Authorize {server_name}</title></head>
  <body>
    <h2>Authorize {server_name}</h2>
    <p>Grant <strong>{client_id}</strong> access to this MCP server?</p>
    <form method="post" action="/oauth/authorize">
      <input type="hidden" name="client_id" value="{client_id}" />
      <input type="hidden" name="redirect_uri" value="{redirect_uri}" />
      <input type="hidden" name="state" value="{state}" />
      <button type="submit" name="action" value="allow">Allow</button>
      <button type="submit" name="action" value="deny">Deny</button>
    </form>
  </body>
</html>
"""


def generate_access_token() -> str:
    """Build an opaque token: ``mcp_<epoch ms>_<16 random [a-z0-9]>``."""
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(16))
    return f"mcp_{int(time.time() * 1000)}_{suffix}"


def generate_authorization_code() -> str:
    return secrets.token_urlsafe(16)


def render_consent_page(server_name: str, client_id: str, redirect_uri: str, state: str) -> str:
    """Render the consent form. Every interpolated value is HTML-escaped."""
    return CONSENT_PAGE.format(
        server_name=html.escape(server_name),
        client_id=html.escape(client_id),
        redirect_uri=html.escape(redirect_uri),
        state=html.escape(state),
    )


def with_query(url: str, params: dict[str, str]) -> str:
    """Append query parameters to a URL, keeping any it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(parts._replace(query=urlencode(query)))


def parse_form_or_json(request: HttpRequest) -> dict[str, Any]:
    """Read a request body as JSON when declared so, else as a URL-encoded form.

    Undecodable bodies yield an empty dict.
    """
    try:
        text = request.body.decode("utf-8")
    except UnicodeDecodeError:
        return {}
    if request.content_type == "application/json":
        try:
            data = json.loads(text) if text else {}
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}
    return dict(parse_qsl(text, keep_blank_values=True))


class OAuthStub:
    """Stateless OAuth placeholder bound to one HTTP transport."""

    def __init__(self, server_name: str) -> None:
        self.server_name = server_name

    def mount(self, transport: HttpServerTransport) -> None:
        transport.add_route("GET", "/oauth/authorize", self.handle_authorize_page)
        transport.add_route("POST", "/oauth/authorize", self.handle_authorize_decision)
        transport.add_route("POST", "/oauth/token", self.handle_token)

    async def handle_authorize_page(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        page = render_consent_page(
            self.server_name,
            request.query.get("client_id", ""),
            request.query.get("redirect_uri", ""),
            request.query.get("state", ""),
        )
        await send_http_response(writer, 200, page, content_type="text/html")

    async def handle_authorize_decision(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        form = parse_form_or_json(request)
        redirect_uri = str(form.get("redirect_uri") or "")
        if not redirect_uri:
            await send_json(writer, 400, {"error": "invalid_request"})
            return

        state = str(form.get("state") or "")
        if form.get("action") == "allow":
            location = with_query(
                redirect_uri, {"code": generate_authorization_code(), "state": state}
            )
            logger.info("OAuth consent granted for client %r", form.get("client_id"))
        else:
            location = with_query(redirect_uri, {"error": "access_denied", "state": state})
            logger.info("OAuth consent denied for client %r", form.get("client_id"))

        await send_http_response(writer, 302, content_type=None, headers=[("Location", location)])

    async def handle_token(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        form = parse_form_or_json(request)
        grant_type = form.get("grant_type")
        if grant_type != "authorization_code":
            logger.debug("Rejected token request with grant_type %r", grant_type)
            await send_json(writer, 400, {"error": "unsupported_grant_type"})
            return

        await send_json(
            writer,
            200,
            {
                "access_token": generate_access_token(),
                "token_type": "Bearer",
                "expires_in": TOKEN_LIFETIME_SECONDS,
            },
        )
