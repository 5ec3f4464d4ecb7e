"""Exceptions raised by the OAuth client flow and the token verifier.

Client-side errors abort the authorization flow and are surfaced to the
CLI. Verification errors never escape the request pipeline: the middleware
turns every TokenVerificationError into a 401 response.
"""

from typing import Optional


class OAuthError(Exception):
    """Base class for all OAuth errors in this package."""


class HTTPResponseError(OAuthError):
    """An OAuth call that failed with an HTTP response worth reporting."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


# ============== Client side ==============

class DiscoveryError(OAuthError):
    """Neither well-known document could be fetched or parsed."""


class RegistrationUnsupportedError(OAuthError):
    """The authorization server does not advertise a registration endpoint."""


class RegistrationError(HTTPResponseError):
    """Dynamic client registration was rejected."""


class PKCEStateMismatchError(OAuthError):
    """The callback's state does not match the one sent with the request."""


class AuthorizationDeniedError(OAuthError):
    """The authorization server redirected back with an error."""

    def __init__(self, error: str, description: Optional[str] = None):
        message = f"Authorization failed: {error}"
        if description:
            message += f" ({description})"
        super().__init__(message)
        self.error = error
        self.description = description


class TokenExchangeError(HTTPResponseError):
    """The token endpoint refused the authorization code."""


class AuthorizationTimeoutError(OAuthError, TimeoutError):
    """No callback arrived before the wait limit."""


class CallbackServerError(OAuthError):
    """The local callback listener could not bind or serve."""


# ============== Server side ==============

class TokenVerificationError(OAuthError):
    """Base class for bearer token verification failures."""


class MalformedTokenError(TokenVerificationError):
    pass


class KeyNotFoundError(TokenVerificationError):
    pass


class KeySetFetchError(TokenVerificationError):
    pass


class SignatureInvalidError(TokenVerificationError):
    pass


class IssuerMismatchError(TokenVerificationError):
    pass


class AudienceMismatchError(TokenVerificationError):
    pass


class TokenExpiredError(TokenVerificationError):
    pass
