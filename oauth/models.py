"""Data carried between the OAuth components.

Everything here is immutable: metadata is fetched once per session,
tokens and claims are never persisted.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from oauth.errors import DiscoveryError


REQUIRED_METADATA_FIELDS = ("issuer", "authorization_endpoint", "token_endpoint")


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


@dataclass(frozen=True)
class AuthorizationServerMetadata:
    """OAuth 2.0 Authorization Server Metadata (RFC 8414 / OIDC Discovery)."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: Optional[str] = None
    registration_endpoint: Optional[str] = None
    response_types_supported: list[str] = field(default_factory=list)
    grant_types_supported: list[str] = field(default_factory=list)
    code_challenge_methods_supported: list[str] = field(default_factory=list)
    scopes_supported: list[str] = field(default_factory=list)
    token_endpoint_auth_methods_supported: list[str] = field(default_factory=list)
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "AuthorizationServerMetadata":
        """Build metadata from a discovery document.

        Raises:
            DiscoveryError: if a required endpoint is missing.
        """
        missing = [name for name in REQUIRED_METADATA_FIELDS if not data.get(name)]
        if missing:
            raise DiscoveryError(f"Metadata document is missing: {', '.join(missing)}")

        return cls(
            issuer=data["issuer"],
            authorization_endpoint=data["authorization_endpoint"],
            token_endpoint=data["token_endpoint"],
            jwks_uri=data.get("jwks_uri"),
            registration_endpoint=data.get("registration_endpoint"),
            response_types_supported=_as_list(data.get("response_types_supported")),
            grant_types_supported=_as_list(data.get("grant_types_supported")),
            code_challenge_methods_supported=_as_list(data.get("code_challenge_methods_supported")),
            scopes_supported=_as_list(data.get("scopes_supported")),
            token_endpoint_auth_methods_supported=_as_list(
                data.get("token_endpoint_auth_methods_supported")
            ),
            raw=dict(data),
        )

    def with_overrides(self, **overrides: Optional[str]) -> "AuthorizationServerMetadata":
        """Return a copy with the non-empty overrides applied."""
        changes = {name: value for name, value in overrides.items() if value}
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class ClientRegistration:
    """Result of dynamic client registration (RFC 7591)."""

    client_id: str
    redirect_uris: list[str]
    grant_types: list[str] = field(default_factory=lambda: ["authorization_code"])
    response_types: list[str] = field(default_factory=lambda: ["code"])
    client_name: Optional[str] = None
    client_secret: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class AccessToken:
    """Token endpoint response. Held in memory for the session only."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    refresh_token: Optional[str] = field(default=None, repr=False)
    scope: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AccessToken":
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            expires_in=int(expires_in) if expires_in is not None else None,
        )


@dataclass(frozen=True)
class VerifiedClaims:
    """Validated payload of a bearer token, scoped to one request."""

    issuer: str
    subject: str
    audience: list[str] = field(default_factory=list)
    client_id: Optional[str] = None
    scopes: list[str] = field(default_factory=list)
    expires_at: Optional[int] = None
    raw: dict = field(default_factory=dict, compare=False)

    @classmethod
    def from_payload(cls, payload: dict) -> "VerifiedClaims":
        # "scp" is what some issuers (Azure AD, Okta) use instead of "scope"
        scopes = payload.get("scope", payload.get("scp"))
        return cls(
            issuer=payload["iss"],
            subject=payload["sub"],
            audience=_as_list(payload.get("aud")),
            client_id=payload.get("client_id", payload.get("azp")),
            scopes=_as_list(scopes),
            expires_at=payload.get("exp"),
            raw=dict(payload),
        )
