"""Tests for dynamic client registration."""

from dataclasses import replace
from unittest.mock import patch

import pytest
import requests

from conftest import REGISTRATION_ENDPOINT, make_response
from oauth.errors import RegistrationError, RegistrationUnsupportedError
from oauth.registration import register_client

REDIRECT_URI = "http://localhost:7080/callback"


class TestRegisterClient:
    def test_missing_registration_endpoint_fails_before_any_request(self, metadata):
        metadata = replace(metadata, registration_endpoint=None)

        with patch("oauth.registration.requests.post") as mock_post:
            with pytest.raises(RegistrationUnsupportedError):
                register_client(metadata, "My Client", [REDIRECT_URI])

        mock_post.assert_not_called()

    def test_registers_public_client(self, metadata):
        response = make_response(201, {"client_id": "client-abc", "client_name": "My Client"})

        with patch("oauth.registration.requests.post", return_value=response) as mock_post:
            registration = register_client(metadata, "My Client", [REDIRECT_URI])

        assert registration.client_id == "client-abc"
        assert registration.redirect_uris == [REDIRECT_URI]
        assert registration.client_secret is None

        args, kwargs = mock_post.call_args
        assert args[0] == REGISTRATION_ENDPOINT
        assert kwargs["json"] == {
            "client_name": "My Client",
            "redirect_uris": [REDIRECT_URI],
            "grant_types": ["authorization_code"],
            "response_types": ["code"],
            "scope": "mcp",
            "token_endpoint_auth_method": "none",
        }

    def test_error_status_raises_with_body(self, metadata):
        response = make_response(400, {"error": "invalid_redirect_uri"})

        with patch("oauth.registration.requests.post", return_value=response):
            with pytest.raises(RegistrationError) as exc_info:
                register_client(metadata, "My Client", [REDIRECT_URI])

        assert exc_info.value.status_code == 400
        assert "invalid_redirect_uri" in exc_info.value.body

    def test_response_without_client_id_raises(self, metadata):
        response = make_response(201, {"client_name": "My Client"})

        with patch("oauth.registration.requests.post", return_value=response):
            with pytest.raises(RegistrationError, match="client_id"):
                register_client(metadata, "My Client", [REDIRECT_URI])

    def test_invalid_json_raises(self, metadata):
        response = make_response(201, text="created")

        with patch("oauth.registration.requests.post", return_value=response):
            with pytest.raises(RegistrationError):
                register_client(metadata, "My Client", [REDIRECT_URI])

    def test_network_failure_is_not_retried(self, metadata):
        with patch(
            "oauth.registration.requests.post",
            side_effect=requests.ConnectionError("connection refused"),
        ) as mock_post:
            with pytest.raises(RegistrationError):
                register_client(metadata, "My Client", [REDIRECT_URI])

        assert mock_post.call_count == 1
