"""Config management for simple-oauth-mcp.

Settings come from the environment, with a .env file in the working
directory loaded first when present.
"""
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from oauth.discovery import discover_metadata
from oauth.models import AuthorizationServerMetadata

logger = logging.getLogger(__name__)

DEFAULT_MCP_PORT = 4111
DEFAULT_REDIRECT_PORT = 7080
DEFAULT_CALLBACK_TIMEOUT = 300.0


class ConfigError(ValueError):
    """Missing or invalid configuration."""


def _int(value: Optional[str], default: int, name: str) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


class Config:
    """Configuration container."""

    def __init__(self, data: Mapping[str, str] = None):
        self.data = dict(data or {})

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.data.get(name, "").strip()
        return value or default

    # ============== Server ==============

    @property
    def issuer(self) -> Optional[str]:
        # Compared exactly against "iss", so a trailing slash is kept as given
        return self._get("AUTH_ISSUER")

    @property
    def authorization_endpoint(self) -> Optional[str]:
        return self._get("AUTH_AUTHORIZATION_ENDPOINT")

    @property
    def token_endpoint(self) -> Optional[str]:
        return self._get("AUTH_TOKEN_ENDPOINT")

    @property
    def jwks_uri(self) -> Optional[str]:
        return self._get("AUTH_JWKS_URI")

    @property
    def registration_endpoint(self) -> Optional[str]:
        return self._get("AUTH_REGISTRATION_ENDPOINT")

    @property
    def audience(self) -> Optional[str]:
        return self._get("AUTH_AUDIENCE")

    @property
    def mcp_host(self) -> str:
        return self._get("MCP_HOST", "0.0.0.0")

    @property
    def mcp_port(self) -> int:
        return _int(self._get("MCP_PORT"), DEFAULT_MCP_PORT, "MCP_PORT")

    @property
    def resource(self) -> str:
        return self._get("MCP_RESOURCE", "mcp://hello-world-mcp-server")

    # ============== Client ==============

    @property
    def mcp_server_url(self) -> str:
        return self._get("MCP_SERVER_URL", f"http://localhost:{DEFAULT_MCP_PORT}").rstrip("/")

    @property
    def client_name(self) -> str:
        return self._get("OAUTH_CLIENT_NAME", "My Dynamic MCP Client")

    @property
    def redirect_port(self) -> int:
        return _int(self._get("OAUTH_REDIRECT_PORT"), DEFAULT_REDIRECT_PORT, "OAUTH_REDIRECT_PORT")

    @property
    def callback_timeout(self) -> float:
        value = self._get("OAUTH_CALLBACK_TIMEOUT")
        if not value:
            return DEFAULT_CALLBACK_TIMEOUT
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"OAUTH_CALLBACK_TIMEOUT must be a number, got {value!r}")

    @property
    def scope(self) -> str:
        return self._get("OAUTH_SCOPE", "mcp")

    # ============== Logging ==============

    @property
    def log_level(self) -> str:
        return self._get("LOG_LEVEL", "INFO").upper()

    @property
    def log_json(self) -> bool:
        return self._get("LOG_FORMAT", "plain").lower() == "json"

    def has_endpoint_overrides(self) -> bool:
        """True when the issuer can be used without discovery."""
        return bool(self.authorization_endpoint and self.token_endpoint and self.jwks_uri)


def load_config(environ: Mapping[str, str] = None, env_file: Optional[Path] = None) -> Config:
    """Load config from the environment.

    Args:
        environ: Mapping to read instead of os.environ (tests).
        env_file: .env file to load first; defaults to ./.env if it exists.
    """
    if environ is None:
        env_file = env_file or Path(".env")
        if env_file.exists():
            load_dotenv(env_file)
        environ = os.environ
    return Config(environ)


def resolve_server_metadata(config: Config) -> AuthorizationServerMetadata:
    """Work out the trusted issuer's endpoints.

    With authorization, token and JWKS overrides all set, no network call
    is made. Otherwise the issuer is discovered and any overrides replace
    the discovered values.

    Raises:
        ConfigError: AUTH_ISSUER is missing or no JWKS URI can be found.
        DiscoveryError: discovery was needed and failed.
    """
    if not config.issuer:
        raise ConfigError("AUTH_ISSUER environment variable is required")

    overrides = {
        "authorization_endpoint": config.authorization_endpoint,
        "token_endpoint": config.token_endpoint,
        "jwks_uri": config.jwks_uri,
        "registration_endpoint": config.registration_endpoint,
    }

    if config.has_endpoint_overrides():
        logger.info("[STARTUP] Using configured OAuth endpoints, skipping discovery")
        metadata = AuthorizationServerMetadata.from_dict({"issuer": config.issuer, **overrides})
    else:
        metadata = discover_metadata(config.issuer).with_overrides(**overrides)

    if not metadata.jwks_uri:
        raise ConfigError(
            f"No jwks_uri in metadata for {config.issuer}; set AUTH_JWKS_URI"
        )
    return metadata
