"""Signing key resolution from an issuer's JWKS endpoint.

Keys are cached per (issuer, kid) for the life of the process. A cache
miss refetches the whole key set, which also covers key rotation: a
rotated key arrives with a new kid and therefore misses.
"""

import logging
from typing import Optional

import httpx
import jwt

from oauth.errors import KeyNotFoundError, KeySetFetchError

logger = logging.getLogger(__name__)

JWKS_TIMEOUT = 10.0


class KeyResolver:
    """Fetch and cache public signing keys.

    Safe to share between concurrent requests. Reads never block, and no
    lock is held while fetching, so simultaneous misses for the same kid
    may each fetch the key set.

    Args:
        key_set_endpoints: Maps each trusted issuer to its JWKS URI.
        timeout: Timeout for key set requests, in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        key_set_endpoints: dict[str, str],
        timeout: float = JWKS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_set_endpoints = dict(key_set_endpoints)
        self.timeout = timeout
        self._transport = transport
        self._keys: dict[tuple[str, str], jwt.PyJWK] = {}

    def cached_kids(self, issuer: str) -> list[str]:
        return [kid for (key_issuer, kid) in self._keys if key_issuer == issuer]

    def clear(self) -> None:
        self._keys = {}

    async def get_signing_key(self, issuer: str, kid: str) -> jwt.PyJWK:
        """Return the key for kid published by issuer.

        Raises:
            KeyNotFoundError: kid is not in the issuer's key set.
            KeySetFetchError: the key set could not be fetched or parsed.
        """
        key = self._keys.get((issuer, kid))
        if key is not None:
            return key

        jwks_uri = self.key_set_endpoints.get(issuer)
        if not jwks_uri:
            raise KeyNotFoundError(f"No key set endpoint configured for issuer {issuer}")

        logger.info(f"[JWKS] Key {kid} not cached, fetching key set for {issuer}")
        fetched = await self._fetch_keys(jwks_uri)
        for fetched_kid, fetched_key in fetched.items():
            self._keys[(issuer, fetched_kid)] = fetched_key

        key = fetched.get(kid)
        if key is None:
            raise KeyNotFoundError(f"Key {kid} not found in key set from {jwks_uri}")
        return key

    async def _fetch_keys(self, jwks_uri: str) -> dict[str, jwt.PyJWK]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(jwks_uri, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise KeySetFetchError(f"Could not fetch key set from {jwks_uri}: {e}") from e

        if response.status_code != 200:
            raise KeySetFetchError(f"Key set endpoint {jwks_uri} returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise KeySetFetchError(f"Key set from {jwks_uri} is not valid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
            raise KeySetFetchError(f"Key set from {jwks_uri} has no 'keys' list")

        return self._index_keys(data["keys"])

    @staticmethod
    def _index_keys(entries: list) -> dict[str, jwt.PyJWK]:
        keys = {}
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("kid"):
                continue
            if entry.get("use", "sig") != "sig":
                continue
            try:
                keys[entry["kid"]] = jwt.PyJWK(entry)
            except (jwt.PyJWKError, jwt.InvalidKeyError) as e:
                logger.debug(f"[JWKS] Skipping unusable key {entry['kid']}: {e}")
        logger.info(f"[JWKS] Loaded {len(keys)} signing key(s)")
        return keys
