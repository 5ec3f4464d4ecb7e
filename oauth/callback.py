"""One-shot local listener for the OAuth redirect.

The listener owns a bound socket for exactly one callback request. It is
a context manager so the socket is released on success, error, timeout
and Ctrl+C alike.
"""

import html
import logging
import secrets
import socket
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional, Union
from urllib.parse import parse_qs, urlparse

from oauth.errors import (
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    CallbackServerError,
    OAuthError,
    PKCEStateMismatchError,
)
from oauth.templates import CALLBACK_PAGE, ERROR_DETAIL

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
DEFAULT_CALLBACK_TIMEOUT = 300.0
POLL_INTERVAL = 1.0
REQUEST_TIMEOUT = 2.0


def find_free_port() -> int:
    """Find an available port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def build_redirect_uri(port: int, path: str = CALLBACK_PATH) -> str:
    return f"http://localhost:{port}{path}"


def _first(params: dict, name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


def evaluate_callback(params: dict, expected_state: str) -> str:
    """Validate callback query parameters and return the authorization code.

    Args:
        params: Parsed query string (parse_qs format).
        expected_state: The state sent with the authorization request.

    Raises:
        AuthorizationDeniedError: the server returned an error, or no code.
        PKCEStateMismatchError: the state does not match.
    """
    error = _first(params, "error")
    if error:
        raise AuthorizationDeniedError(error, _first(params, "error_description"))

    returned_state = _first(params, "state") or ""
    if not secrets.compare_digest(returned_state.encode("utf-8"), expected_state.encode("utf-8")):
        raise PKCEStateMismatchError("Callback state does not match the authorization request")

    code = _first(params, "code")
    if not code:
        raise AuthorizationDeniedError("invalid_request", "callback carried no authorization code")
    return code


def render_page(title: str, message: str, error: Optional[str] = None) -> bytes:
    detail = ERROR_DETAIL.format(error=html.escape(error)) if error else ""
    page = CALLBACK_PAGE.format(
        title=html.escape(title),
        message=html.escape(message),
        detail=detail,
    )
    return page.encode("utf-8")


class CallbackHandler(BaseHTTPRequestHandler):
    """Handle the OAuth redirect from the browser."""

    # Applied to each accepted socket, so an idle connection cannot stall wait()
    timeout = REQUEST_TIMEOUT

    def log_message(self, format, *args):
        """Suppress default logging."""
        logger.debug("[OAUTH] Callback listener: " + format % args)

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path:
            # favicon and friends do not count as the callback
            self.send_error(404)
            return

        try:
            code = evaluate_callback(parse_qs(parsed.query), self.server.expected_state)
        except OAuthError as e:
            self.server.outcome = e
            self._send_page(400, render_page("Authorization Failed", "You can close this window.", str(e)))
            return

        self.server.outcome = code
        self._send_page(200, render_page("Authorization Successful!", "You can close this window."))

    def _send_page(self, status: int, body: bytes):
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)


class CallbackServer(HTTPServer):
    """HTTPServer that refuses to share its port with another listener."""

    allow_reuse_port = False


class CallbackListener:
    """Accept a single OAuth callback on a fixed local port.

    Usage:
        with CallbackListener(state, port=7080) as listener:
            open_browser(url)
            code = listener.wait(timeout=300)
    """

    def __init__(
        self,
        expected_state: str,
        port: int,
        host: str = "127.0.0.1",
        path: str = CALLBACK_PATH,
    ):
        self.expected_state = expected_state
        self.port = port
        self.host = host
        self.path = path
        self._server: Optional[CallbackServer] = None

    @property
    def redirect_uri(self) -> str:
        return build_redirect_uri(self.port, self.path)

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        try:
            server = CallbackServer((self.host, self.port), CallbackHandler)
        except OSError as e:
            raise CallbackServerError(f"Cannot listen on {self.host}:{self.port}: {e}") from e

        server.expected_state = self.expected_state
        server.callback_path = self.path
        server.outcome = None
        server.timeout = POLL_INTERVAL
        self.port = server.server_address[1]
        self._server = server
        logger.info(f"[OAUTH] Callback listener started on {self.redirect_uri}")

    def wait(self, timeout: Optional[float] = DEFAULT_CALLBACK_TIMEOUT) -> str:
        """Block until the callback arrives and return the authorization code.

        The listener is closed before this returns or raises.

        Raises:
            AuthorizationTimeoutError: nothing arrived within timeout seconds.
            CallbackServerError: the socket failed while waiting.
            AuthorizationDeniedError, PKCEStateMismatchError: bad callback.
        """
        if self._server is None:
            raise CallbackServerError("Callback listener is not started")

        deadline = None if timeout is None else time.monotonic() + timeout
        outcome: Union[str, OAuthError, None] = None
        try:
            while outcome is None:
                if deadline is not None and time.monotonic() >= deadline:
                    raise AuthorizationTimeoutError(
                        f"No authorization callback received within {timeout:.0f} seconds"
                    )
                try:
                    self._server.handle_request()
                except OSError as e:
                    raise CallbackServerError(f"Callback listener failed: {e}") from e
                outcome = self._server.outcome
        finally:
            self.close()

        if isinstance(outcome, OAuthError):
            raise outcome
        return outcome

    def close(self) -> None:
        if self._server is not None:
            self._server.server_close()
            self._server = None
            logger.info("[OAUTH] Callback listener stopped")

    def __enter__(self) -> "CallbackListener":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
