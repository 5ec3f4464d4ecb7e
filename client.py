"""MCP client that authenticates with OAuth before connecting.

Flow: discover the server's OAuth metadata, register dynamically as a
public client, run the PKCE authorization code flow in the browser, then
talk to the MCP endpoint with the access token.
"""
import logging
from typing import Any, Callable, Optional

from fastmcp import Client
from fastmcp.client.auth import BearerAuth

from oauth.authorizer import PKCEAuthorizer
from oauth.browser import open_browser
from oauth.callback import DEFAULT_CALLBACK_TIMEOUT, build_redirect_uri
from oauth.discovery import discover_metadata
from oauth.models import AccessToken, AuthorizationServerMetadata, ClientRegistration
from oauth.registration import register_client

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp/"


class AuthenticatedMCPClient:
    """MCP client with OAuth authentication."""

    def __init__(
        self,
        mcp_server_url: str,
        client_name: str,
        redirect_port: int,
        scope: str = "mcp",
        callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
        open_url: Callable[[str], Optional[bool]] = open_browser,
    ):
        self.mcp_server_url = mcp_server_url.rstrip("/")
        self.client_name = client_name
        self.redirect_port = redirect_port
        self.scope = scope
        self.callback_timeout = callback_timeout
        self.open_url = open_url

        self.metadata: Optional[AuthorizationServerMetadata] = None
        self.registration: Optional[ClientRegistration] = None
        self.token: Optional[AccessToken] = None

    @property
    def redirect_uri(self) -> str:
        return build_redirect_uri(self.redirect_port)

    @property
    def mcp_url(self) -> str:
        return f"{self.mcp_server_url}{MCP_PATH}"

    def authenticate_and_connect(self) -> AccessToken:
        """Complete authentication flow.

        Any failure propagates and leaves no token behind.
        """
        logger.info("[OAUTH] Starting OAuth authentication flow...")
        self.token = None

        metadata = discover_metadata(self.mcp_server_url)
        registration = register_client(metadata, self.client_name, [self.redirect_uri], self.scope)

        authorizer = PKCEAuthorizer(
            metadata,
            registration,
            redirect_uri=self.redirect_uri,
            scope=self.scope,
            open_url=self.open_url,
            callback_timeout=self.callback_timeout,
        )
        token = authorizer.authorize()

        self.metadata = metadata
        self.registration = registration
        self.token = token
        logger.info(f"[OAUTH] Authenticated, MCP endpoint: {self.mcp_url}")
        return token

    def _client(self) -> Client:
        if self.token is None:
            raise RuntimeError("Not connected. Call authenticate_and_connect() first.")
        return Client(self.mcp_url, auth=BearerAuth(self.token.access_token))

    async def get_tools(self) -> dict[str, Any]:
        """Get available tools from the MCP server, keyed by name."""
        async with self._client() as client:
            tools = await client.list_tools()
        logger.info(f"[TOOL] Available tools: {[tool.name for tool in tools]}")
        return {tool.name: tool for tool in tools}

    async def call_tool(self, tool_name: str, args: dict[str, Any]) -> Any:
        """Call a tool on the MCP server."""
        async with self._client() as client:
            tools = await client.list_tools()
            if tool_name not in {tool.name for tool in tools}:
                raise ValueError(f"Tool '{tool_name}' not found")

            logger.info(f"[TOOL] Calling tool: {tool_name}")
            result = await client.call_tool(tool_name, args)
        return result
