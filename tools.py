"""MCP tools for simple-oauth-mcp.

The tools read the caller's verified claims from the current HTTP
request, where BearerAuthMiddleware put them.
"""

import json
import logging
from dataclasses import asdict
from typing import Optional

from fastmcp import FastMCP
from fastmcp.server.dependencies import get_http_request

from oauth.models import VerifiedClaims

logger = logging.getLogger(__name__)

# Create the FastMCP server instance
mcp = FastMCP("hello-world-mcp-server")


def current_claims() -> Optional[VerifiedClaims]:
    """Claims of the request being served, if it was authenticated."""
    try:
        request = get_http_request()
    except RuntimeError:
        return None
    return getattr(request.state, "claims", None)


def greet(name: str, claims: Optional[VerifiedClaims]) -> str:
    if claims is None:
        return f"Hello {name}! (No user context available)"
    context = {key: value for key, value in asdict(claims).items() if key != "raw"}
    return f"Hello {name}! ({json.dumps(context)})"


@mcp.tool(name="helloTool")
def hello_tool(name: str) -> str:
    """Returns a greeting message with the provided name.

    Args:
        name: The name to greet
    """
    logger.info(f"[TOOL] helloTool invoked, name length: {len(name)}")
    return greet(name, current_claims())
