"""Hello World OAuth MCP Server.

It handles:
- MCP tools (helloTool) via tools.py
- MCP protocol endpoint via Streamable HTTP (/mcp), guarded by
  BearerAuthMiddleware
- OAuth discovery documents pointing MCP clients at the trusted issuer

The server only verifies tokens; issuing them is the issuer's job.
"""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware import Middleware

from config import Config, load_config, resolve_server_metadata
from logging_config import setup_logging
from oauth.endpoints import create_oauth_router
from oauth.jwks import KeyResolver
from oauth.jwt_utils import TokenVerifier
from oauth.middleware import BearerAuthMiddleware
from oauth.models import AuthorizationServerMetadata
from tools import mcp

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    config: Config,
    metadata: Optional[AuthorizationServerMetadata] = None,
    key_resolver: Optional[KeyResolver] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Loaded configuration; AUTH_ISSUER is required.
        metadata: Issuer metadata; resolved from config when omitted.
        key_resolver: Signing key cache; one is created when omitted.
    """
    if metadata is None:
        metadata = resolve_server_metadata(config)
    logger.info(f"[STARTUP] Trusted issuer: {config.issuer}")
    logger.info(f"[STARTUP] Authorization endpoint: {metadata.authorization_endpoint}")
    logger.info(f"[STARTUP] JWKS URI: {metadata.jwks_uri}")

    # One cache for the whole process, shared by every request
    if key_resolver is None:
        key_resolver = KeyResolver({config.issuer: metadata.jwks_uri})
    verifier = TokenVerifier(config.issuer, key_resolver, audience=config.audience)

    mcp_http_app = mcp.http_app(
        path="/",  # Route at root of mounted app
        transport="streamable-http",
        middleware=[
            Middleware(
                BearerAuthMiddleware,
                verifier=verifier,
                authorization_endpoint=metadata.authorization_endpoint,
            )
        ],
    )

    # Pass MCP app's lifespan to FastAPI for proper initialization
    app = FastAPI(
        title="Hello World OAuth MCP Server",
        description="MCP server protected by OAuth 2.0 bearer tokens",
        version=VERSION,
        lifespan=mcp_http_app.lifespan,
    )

    # Add CORS middleware for browser-based MCP client access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["WWW-Authenticate", "Mcp-Session-Id"],
    )

    scopes = [config.scope]
    app.include_router(create_oauth_router(metadata, config.resource, scopes))

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "hello-world-mcp-server"}

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        return {
            "name": "Hello World OAuth MCP Server",
            "version": VERSION,
            "endpoints": {"streamable_http": "/mcp"},
            "tools": ["helloTool"],
            "oauth": {
                "issuer": metadata.issuer,
                "protected_resource": "/.well-known/oauth-protected-resource",
                "authorization_server": "/.well-known/oauth-authorization-server",
            },
        }

    # Mount MCP app at /mcp
    app.mount("/mcp", mcp_http_app)
    return app


def run_server(config: Config) -> None:
    import uvicorn

    app = create_app(config)
    logger.info(f"[STARTUP] MCP (Streamable HTTP): http://localhost:{config.mcp_port}/mcp")
    uvicorn.run(app, host=config.mcp_host, port=config.mcp_port)


if __name__ == "__main__":
    _config = load_config()
    setup_logging(_config.log_level, _config.log_json)
    run_server(_config)
