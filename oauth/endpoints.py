"""OAuth discovery endpoints served by the MCP server.

The server is not an authorization server. It re-advertises the trusted
issuer's endpoints so that MCP clients which only know the server URL
can find where to authenticate:

- /.well-known/oauth-authorization-server (RFC 8414, MCP 2025-03-26)
- /.well-known/oauth-protected-resource (RFC 9728, MCP 2025-06-18)
"""

import logging

from fastapi import APIRouter

from oauth.models import AuthorizationServerMetadata

logger = logging.getLogger(__name__)


def authorization_server_document(metadata: AuthorizationServerMetadata, scopes: list[str]) -> dict:
    document = {
        "issuer": metadata.issuer,
        "authorization_endpoint": metadata.authorization_endpoint,
        "token_endpoint": metadata.token_endpoint,
        "response_types_supported": ["code"],
        "response_modes_supported": ["query"],
        "grant_types_supported": ["authorization_code"],
        "code_challenge_methods_supported": ["S256"],
        "scopes_supported": scopes,
        "token_endpoint_auth_methods_supported": ["none"],
    }
    if metadata.jwks_uri:
        document["jwks_uri"] = metadata.jwks_uri
    if metadata.registration_endpoint:
        document["registration_endpoint"] = metadata.registration_endpoint
    return document


def protected_resource_document(resource: str, issuer: str, scopes: list[str]) -> dict:
    return {
        "resource": resource,
        "authorization_servers": [issuer],
        "scopes_supported": scopes,
        "bearer_methods_supported": ["header"],
    }


def create_oauth_router(metadata: AuthorizationServerMetadata, resource: str, scopes: list[str]) -> APIRouter:
    """Build the router for the discovery documents of one issuer."""
    router = APIRouter(tags=["oauth"])
    as_document = authorization_server_document(metadata, scopes)
    pr_document = protected_resource_document(resource, metadata.issuer, scopes)

    @router.get("/.well-known/oauth-authorization-server")
    async def oauth_authorization_server():
        """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
        return as_document

    @router.get("/.well-known/oauth-protected-resource")
    async def oauth_protected_resource():
        """OAuth 2.0 Protected Resource Metadata (RFC 9728)."""
        return pr_document

    logger.info(f"[STARTUP] OAuth discovery endpoints advertise issuer {metadata.issuer}")
    return router
