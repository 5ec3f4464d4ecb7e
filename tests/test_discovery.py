"""Tests for OAuth metadata discovery with OpenID Connect fallback."""

from unittest.mock import patch

import pytest
import requests

from conftest import ISSUER, make_response
from oauth.discovery import discover_metadata, well_known_urls
from oauth.errors import DiscoveryError

OAUTH_URL = f"{ISSUER}/.well-known/oauth-authorization-server"
OPENID_URL = f"{ISSUER}/.well-known/openid-configuration"

DOCUMENT = {
    "issuer": ISSUER,
    "authorization_endpoint": f"{ISSUER}/authorize",
    "token_endpoint": f"{ISSUER}/token",
    "jwks_uri": f"{ISSUER}/.well-known/jwks.json",
    "registration_endpoint": f"{ISSUER}/register",
    "code_challenge_methods_supported": ["S256"],
    "scopes_supported": ["mcp"],
}


def fake_get(responses: dict):
    """requests.get replacement answering by URL; values may be exceptions."""

    def _get(url, **kwargs):
        outcome = responses[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return _get


class TestWellKnownUrls:
    def test_uses_issuer_origin(self):
        assert well_known_urls("https://auth.example.com/tenant/v2/") == [OAUTH_URL, OPENID_URL]

    def test_rejects_relative_issuer(self):
        with pytest.raises(DiscoveryError):
            well_known_urls("auth.example.com")


class TestDiscoverMetadata:
    def test_primary_document_wins(self):
        responses = {OAUTH_URL: make_response(200, DOCUMENT)}

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)) as mock_get:
            metadata = discover_metadata(ISSUER)

        assert mock_get.call_count == 1
        assert metadata.issuer == ISSUER
        assert metadata.token_endpoint == f"{ISSUER}/token"
        assert metadata.registration_endpoint == f"{ISSUER}/register"
        assert metadata.code_challenge_methods_supported == ["S256"]

    def test_falls_back_on_error_status(self):
        openid_document = dict(DOCUMENT, registration_endpoint=None)
        responses = {
            OAUTH_URL: make_response(404, text="Not found"),
            OPENID_URL: make_response(200, openid_document),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)) as mock_get:
            metadata = discover_metadata(ISSUER)

        assert mock_get.call_count == 2
        assert metadata.registration_endpoint is None

    def test_falls_back_on_network_failure(self):
        responses = {
            OAUTH_URL: requests.ConnectionError("connection refused"),
            OPENID_URL: make_response(200, DOCUMENT),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            metadata = discover_metadata(ISSUER)

        assert metadata.jwks_uri == f"{ISSUER}/.well-known/jwks.json"

    def test_falls_back_on_invalid_json(self):
        responses = {
            OAUTH_URL: make_response(200, text="<html>login</html>"),
            OPENID_URL: make_response(200, DOCUMENT),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            assert discover_metadata(ISSUER).issuer == ISSUER

    def test_first_document_is_authoritative(self):
        responses = {
            OAUTH_URL: make_response(200, DOCUMENT),
            OPENID_URL: make_response(200, dict(DOCUMENT, token_endpoint=f"{ISSUER}/other")),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            assert discover_metadata(ISSUER).token_endpoint == f"{ISSUER}/token"

    def test_both_documents_failing_raises(self):
        responses = {
            OAUTH_URL: make_response(500, text="boom"),
            OPENID_URL: requests.Timeout("timed out"),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            with pytest.raises(DiscoveryError, match="Could not discover OAuth metadata"):
                discover_metadata(ISSUER)

    def test_both_documents_invalid_json_raises(self):
        responses = {
            OAUTH_URL: make_response(200, text="not json"),
            OPENID_URL: make_response(200, text="still not json"),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            with pytest.raises(DiscoveryError):
                discover_metadata(ISSUER)

    def test_document_without_endpoints_is_rejected(self):
        responses = {
            OAUTH_URL: make_response(200, {"issuer": ISSUER}),
            OPENID_URL: make_response(404, text="Not found"),
        }

        with patch("oauth.discovery.requests.get", side_effect=fake_get(responses)):
            with pytest.raises(DiscoveryError):
                discover_metadata(ISSUER)
