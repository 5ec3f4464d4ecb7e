"""OAuth 2.0 Dynamic Client Registration (RFC 7591) for a public client."""

import logging

import requests

from oauth.errors import RegistrationError, RegistrationUnsupportedError
from oauth.models import AuthorizationServerMetadata, ClientRegistration

logger = logging.getLogger(__name__)

REGISTRATION_TIMEOUT = 30.0


def build_registration_request(client_name: str, redirect_uris: list[str], scope: str) -> dict:
    return {
        "client_name": client_name,
        "redirect_uris": list(redirect_uris),
        "grant_types": ["authorization_code"],
        "response_types": ["code"],
        "scope": scope,
        "token_endpoint_auth_method": "none",
    }


def register_client(
    metadata: AuthorizationServerMetadata,
    client_name: str,
    redirect_uris: list[str],
    scope: str = "mcp",
    timeout: float = REGISTRATION_TIMEOUT,
) -> ClientRegistration:
    """Register this process as a public client and return its client_id.

    Registration is not retried: without deduplication on the server a
    retry could leave orphaned client records behind.

    Raises:
        RegistrationUnsupportedError: metadata has no registration endpoint.
        RegistrationError: the server rejected the request or its response
            carries no client_id.
    """
    endpoint = metadata.registration_endpoint
    if not endpoint:
        raise RegistrationUnsupportedError(
            f"Authorization server {metadata.issuer} does not support dynamic client registration"
        )

    payload = build_registration_request(client_name, redirect_uris, scope)
    logger.info(f"[OAUTH] Registering client '{client_name}' at {endpoint}")

    try:
        response = requests.post(endpoint, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise RegistrationError(f"Client registration request failed: {e}") from e

    if not response.ok:
        raise RegistrationError(
            f"Client registration failed: {response.status_code} {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise RegistrationError(
            "Client registration returned invalid JSON",
            status_code=response.status_code,
            body=response.text,
        ) from e

    if not isinstance(data, dict) or not data.get("client_id"):
        raise RegistrationError(
            "Client registration response has no client_id",
            status_code=response.status_code,
            body=response.text,
        )

    registration = ClientRegistration(
        client_id=data["client_id"],
        redirect_uris=data.get("redirect_uris") or list(redirect_uris),
        grant_types=data.get("grant_types") or payload["grant_types"],
        response_types=data.get("response_types") or payload["response_types"],
        client_name=data.get("client_name", client_name),
        client_secret=data.get("client_secret"),
        raw=data,
    )
    logger.info(f"[OAUTH] Client registered: {registration.client_id}")
    return registration
