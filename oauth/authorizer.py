"""Authorization Code + PKCE flow for a registered public client.

The flow is a straight line of blocking steps:

    IDLE -> CHALLENGE_GENERATED -> LISTENING -> CODE_RECEIVED
         -> TOKEN_EXCHANGED -> DONE

Any failure lands in FAILED. A failed attempt is never resumed: the state
value belongs to the one authorization URL the user saw, so authorize()
always starts over with a fresh verifier and state.
"""

import logging
from enum import Enum
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import requests

from oauth.browser import open_browser
from oauth.callback import DEFAULT_CALLBACK_TIMEOUT, CallbackListener
from oauth.errors import TokenExchangeError
from oauth.models import AccessToken, AuthorizationServerMetadata, ClientRegistration
from oauth.pkce import PKCEChallengePair, generate_state

logger = logging.getLogger(__name__)

TOKEN_TIMEOUT = 30.0


class AuthorizationStep(Enum):
    IDLE = "idle"
    CHALLENGE_GENERATED = "challenge_generated"
    LISTENING = "listening"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    DONE = "done"
    FAILED = "failed"


class PKCEAuthorizer:
    """Run the browser-based authorization code flow and hold the token.

    Args:
        metadata: Discovered authorization server metadata.
        registration: The client registration to authorize as.
        redirect_uri: Must be one of the registered redirect URIs.
            Defaults to the first one.
        scope: Scope requested in the authorization URL.
        open_url: Called with the authorization URL. Defaults to the
            system browser; returns False if it could not open it.
        callback_timeout: Seconds to wait for the user before giving up.
        listen_host: Interface the callback listener binds to.
    """

    def __init__(
        self,
        metadata: AuthorizationServerMetadata,
        registration: ClientRegistration,
        redirect_uri: Optional[str] = None,
        scope: str = "mcp",
        open_url: Callable[[str], Optional[bool]] = open_browser,
        callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
        listen_host: str = "127.0.0.1",
        token_timeout: float = TOKEN_TIMEOUT,
    ):
        if redirect_uri is None:
            if not registration.redirect_uris:
                raise ValueError("Client registration has no redirect URI")
            redirect_uri = registration.redirect_uris[0]

        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or parsed.hostname not in ("localhost", "127.0.0.1") or not parsed.port:
            raise ValueError(f"Redirect URI must be http://localhost:<port>/...: {redirect_uri}")

        self.metadata = metadata
        self.registration = registration
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.open_url = open_url
        self.callback_timeout = callback_timeout
        self.listen_host = listen_host
        self.token_timeout = token_timeout

        self._callback_port = parsed.port
        self._callback_path = parsed.path or "/"
        self.step = AuthorizationStep.IDLE
        self.token: Optional[AccessToken] = None

    def _advance(self, step: AuthorizationStep) -> None:
        logger.debug(f"[OAUTH] {self.step.value} -> {step.value}")
        self.step = step

    def build_authorization_url(self, pkce: PKCEChallengePair, state: str) -> str:
        """Authorization endpoint plus the code flow parameters.

        Query parameters already present on the endpoint are kept.
        """
        endpoint = urlparse(self.metadata.authorization_endpoint)
        params = parse_qsl(endpoint.query, keep_blank_values=True)
        params.extend([
            ("client_id", self.registration.client_id),
            ("response_type", "code"),
            ("redirect_uri", self.redirect_uri),
            ("scope", self.scope),
            ("state", state),
            ("code_challenge", pkce.challenge),
            ("code_challenge_method", pkce.method),
        ])
        return urlunparse(endpoint._replace(query=urlencode(params)))

    def exchange_code(self, code: str, code_verifier: str) -> AccessToken:
        """Trade the authorization code and PKCE verifier for a token.

        Raises:
            TokenExchangeError: on transport failure, a non-2xx status, or
                a response without an access_token.
        """
        form = {
            "grant_type": "authorization_code",
            "client_id": self.registration.client_id,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        }

        try:
            response = requests.post(
                self.metadata.token_endpoint,
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.token_timeout,
            )
        except requests.RequestException as e:
            raise TokenExchangeError(f"Token request failed: {e}") from e

        if not response.ok:
            raise TokenExchangeError(
                f"Token exchange failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TokenExchangeError(
                "Token endpoint returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenExchangeError(
                "Token response has no access_token",
                status_code=response.status_code,
                body=response.text,
            )
        return AccessToken.from_dict(data)

    def authorize(self) -> AccessToken:
        """Run one complete authorization attempt.

        Returns:
            The access token, also kept on self.token.

        Raises:
            AuthorizationDeniedError, PKCEStateMismatchError,
            AuthorizationTimeoutError, CallbackServerError,
            TokenExchangeError.
        """
        self.token = None
        try:
            pkce = PKCEChallengePair.generate()
            state = generate_state()
            self._advance(AuthorizationStep.CHALLENGE_GENERATED)

            with CallbackListener(state, self._callback_port, self.listen_host, self._callback_path) as listener:
                self._advance(AuthorizationStep.LISTENING)
                authorization_url = self.build_authorization_url(pkce, state)
                logger.info("[OAUTH] Opening browser for authorization...")
                if self.open_url(authorization_url) is False:
                    logger.warning(f"[OAUTH] Could not open a browser, visit: {authorization_url}")
                code = listener.wait(self.callback_timeout)
            self._advance(AuthorizationStep.CODE_RECEIVED)

            token = self.exchange_code(code, pkce.verifier)
            self._advance(AuthorizationStep.TOKEN_EXCHANGED)
        except BaseException:
            self._advance(AuthorizationStep.FAILED)
            raise

        self.token = token
        self._advance(AuthorizationStep.DONE)
        logger.info("[OAUTH] Access token obtained successfully")
        return token
