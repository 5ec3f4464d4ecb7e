"""OAuth authorization server metadata discovery.

Tries the OAuth 2.0 Authorization Server Metadata document (RFC 8414)
first and falls back to the OpenID Connect configuration. The first
document that loads is authoritative; the two are never merged.
"""

import logging
from urllib.parse import urlparse

import requests

from oauth.errors import DiscoveryError
from oauth.models import AuthorizationServerMetadata

logger = logging.getLogger(__name__)

OAUTH_METADATA_PATH = "/.well-known/oauth-authorization-server"
OPENID_CONFIGURATION_PATH = "/.well-known/openid-configuration"
DISCOVERY_TIMEOUT = 10.0


def well_known_urls(issuer_url: str) -> list[str]:
    """Return the discovery URLs to try for an issuer, in order."""
    parsed = urlparse(issuer_url)
    if not parsed.scheme or not parsed.netloc:
        raise DiscoveryError(f"Invalid issuer URL: {issuer_url!r}")

    origin = f"{parsed.scheme}://{parsed.netloc}"
    return [f"{origin}{OAUTH_METADATA_PATH}", f"{origin}{OPENID_CONFIGURATION_PATH}"]


def _fetch_document(url: str, timeout: float) -> dict:
    response = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
    if not response.ok:
        raise DiscoveryError(f"{url} returned {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise DiscoveryError(f"{url} did not return valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DiscoveryError(f"{url} did not return a JSON object")
    return data


def discover_metadata(issuer_url: str, timeout: float = DISCOVERY_TIMEOUT) -> AuthorizationServerMetadata:
    """Discover an authorization server's endpoints.

    Args:
        issuer_url: Issuer (or MCP server) base URL. Only its origin is used.
        timeout: Per-request timeout in seconds.

    Returns:
        Metadata from the first document that could be fetched and parsed.

    Raises:
        DiscoveryError: if both documents fail.
    """
    failures = []
    for url in well_known_urls(issuer_url):
        logger.info(f"[OAUTH] Trying metadata discovery: {url}")
        try:
            metadata = AuthorizationServerMetadata.from_dict(_fetch_document(url, timeout))
        except requests.RequestException as e:
            logger.warning(f"[OAUTH] Metadata request failed: {url}: {e}")
            failures.append(f"{url}: {e}")
            continue
        except DiscoveryError as e:
            logger.warning(f"[OAUTH] Metadata discovery failed: {e}")
            failures.append(str(e))
            continue

        logger.info(f"[OAUTH] Discovered metadata for issuer {metadata.issuer} from {url}")
        return metadata

    raise DiscoveryError(
        f"Could not discover OAuth metadata from {issuer_url}. Tried: " + "; ".join(failures)
    )
