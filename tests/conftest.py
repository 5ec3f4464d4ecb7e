"""
Shared pytest fixtures: RSA signing keys, a JWKS endpoint double and a
token factory.
"""

import base64
import json
import os
import sys
import time
from unittest.mock import MagicMock

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

ISSUER = "https://auth.example.com"
JWKS_URI = f"{ISSUER}/.well-known/jwks.json"
AUTHORIZATION_ENDPOINT = f"{ISSUER}/authorize"
TOKEN_ENDPOINT = f"{ISSUER}/token"
REGISTRATION_ENDPOINT = f"{ISSUER}/register"
KID = "test-key-1"


def public_jwk(private_key, kid: str) -> dict:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return jwk


def make_response(status_code: int = 200, json_data=None, text: str = None):
    """Fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_data is not None:
        response.json.return_value = json_data
        response.text = text if text is not None else json.dumps(json_data)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text or ""
    return response


def with_header(token: str, header: dict) -> str:
    """Swap the JOSE header of a signed token, bypassing PyJWT's header checks."""
    encoded = base64.urlsafe_b64encode(json.dumps(header).encode()).rstrip(b"=").decode()
    _, payload, signature = token.split(".")
    return f"{encoded}.{payload}.{signature}"


class JWKSEndpoint:
    """Key set endpoint double that counts requests."""

    def __init__(self, jwks: dict):
        self.jwks = jwks
        self.status_code = 200
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.jwks)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rogue_key():
    """A key that is not published in the key set."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks(signing_key):
    return {"keys": [public_jwk(signing_key, KID)]}


@pytest.fixture
def jwks_endpoint(jwks):
    return JWKSEndpoint(jwks)


@pytest.fixture
def metadata():
    from oauth.models import AuthorizationServerMetadata

    return AuthorizationServerMetadata.from_dict({
        "issuer": ISSUER,
        "authorization_endpoint": AUTHORIZATION_ENDPOINT,
        "token_endpoint": TOKEN_ENDPOINT,
        "jwks_uri": JWKS_URI,
        "registration_endpoint": REGISTRATION_ENDPOINT,
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "code_challenge_methods_supported": ["S256"],
        "scopes_supported": ["mcp"],
    })


@pytest.fixture
def make_token(signing_key):
    """Build a signed JWT. Claims set to None are removed."""

    def _make(claims=None, kid=KID, key=None, algorithm="RS256"):
        now = int(time.time())
        payload = {
            "iss": ISSUER,
            "sub": "user-12345",
            "aud": "mcp://hello-world-mcp-server",
            "client_id": "client-abc",
            "scope": "mcp read",
            "iat": now,
            "exp": now + 3600,
        }
        payload.update(claims or {})
        payload = {name: value for name, value in payload.items() if value is not None}
        headers = {"kid": kid} if kid is not None else {}
        return jwt.encode(payload, key or signing_key, algorithm=algorithm, headers=headers)

    return _make
