"""OAuth middleware for MCP endpoints.

Validates Bearer tokens on every request to the protected app. Verified
claims are attached to request.state.claims for the handlers of that one
request; nothing is stored anywhere else.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from oauth.errors import TokenVerificationError
from oauth.jwt_utils import TokenVerifier

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL = "unauthorized"
INVALID_CREDENTIAL = "invalid_token"


def extract_bearer_token(auth_header: str):
    """Return the token from 'Bearer <token>', or None if malformed."""
    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


def unauthorized_response(
    error: str,
    error_description: str,
    authorization_endpoint: str,
    realm: str = "mcp",
) -> JSONResponse:
    """Return 401 with a WWW-Authenticate challenge naming the authorization endpoint."""
    challenge = f'Bearer realm="{realm}", authorization_uri="{authorization_endpoint}"'
    if error == INVALID_CREDENTIAL:
        challenge += f', error="{INVALID_CREDENTIAL}", error_description="{error_description}"'

    return JSONResponse(
        {
            "error": error,
            "error_description": error_description,
            "authorization_uri": authorization_endpoint,
        },
        status_code=401,
        headers={"WWW-Authenticate": challenge},
    )


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Middleware to validate OAuth Bearer tokens for the Streamable HTTP MCP endpoint."""

    def __init__(self, app, verifier: TokenVerifier, authorization_endpoint: str, realm: str = "mcp"):
        super().__init__(app)
        self.verifier = verifier
        self.authorization_endpoint = authorization_endpoint
        self.realm = realm

    async def dispatch(self, request: Request, call_next):
        # CORS preflight carries no credentials
        if request.method == "OPTIONS":
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("Authorization", ""))
        if token is None:
            logger.info("[AUTH] Request rejected: no Bearer token")
            return unauthorized_response(
                MISSING_CREDENTIAL,
                "Valid bearer token required",
                self.authorization_endpoint,
                self.realm,
            )

        try:
            claims = await self.verifier.verify(token)
        except TokenVerificationError as e:
            logger.info(f"[AUTH] Request rejected: {type(e).__name__}: {e}")
            return unauthorized_response(
                INVALID_CREDENTIAL,
                "Invalid or expired token",
                self.authorization_endpoint,
                self.realm,
            )

        request.state.claims = claims
        logger.info(f"[AUTH] Request authorized: {claims.subject}")
        return await call_next(request)
