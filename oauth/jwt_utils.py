"""JWT bearer token verification for the resource server.

Tokens are verified statelessly against the trusted issuer's published
keys. Nothing from the token is trusted before the signature checks out:
the header is only read to find the key id and to match the algorithm
against the allow-list.
"""

import logging
from typing import Optional, Sequence

import jwt

from oauth.errors import (
    AudienceMismatchError,
    IssuerMismatchError,
    MalformedTokenError,
    SignatureInvalidError,
    TokenExpiredError,
)
from oauth.jwks import KeyResolver
from oauth.models import VerifiedClaims

logger = logging.getLogger(__name__)

# Asymmetric algorithms only; an HMAC algorithm here would let a public key act as a shared secret
ALLOWED_ALGORITHMS = (
    "RS256", "RS384", "RS512",
    "ES256", "ES384", "ES512",
    "PS256", "PS384", "PS512",
)
REQUIRED_CLAIMS = ["exp", "iss", "sub"]


def read_unverified_header(token: str) -> dict:
    """Decode the JOSE header without verifying anything.

    Raises:
        MalformedTokenError: not a three-segment JWS or unreadable header.
    """
    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        raise MalformedTokenError("Token is not three dot-separated segments")

    try:
        return jwt.get_unverified_header(token)
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Token header cannot be parsed: {e}") from e


class TokenVerifier:
    """Validate bearer tokens issued by one trusted issuer.

    Args:
        issuer: The only accepted "iss" value, compared exactly.
        key_resolver: Shared KeyResolver that knows the issuer's JWKS URI.
        audience: If set, the token's "aud" must contain it.
        algorithms: Accepted signing algorithms.
        leeway: Clock skew tolerance in seconds for exp/nbf/iat.
    """

    def __init__(
        self,
        issuer: str,
        key_resolver: KeyResolver,
        audience: Optional[str] = None,
        algorithms: Sequence[str] = ALLOWED_ALGORITHMS,
        leeway: float = 0,
    ):
        self.issuer = issuer
        self.key_resolver = key_resolver
        self.audience = audience
        self.algorithms = list(algorithms)
        self.leeway = leeway

    async def verify(self, token: str) -> VerifiedClaims:
        """Verify a raw bearer token and return its claims.

        Raises:
            MalformedTokenError: bad structure, header, kid or claims.
            KeyNotFoundError, KeySetFetchError: key resolution failed.
            SignatureInvalidError: bad signature or disallowed algorithm.
            IssuerMismatchError: "iss" is not the trusted issuer.
            AudienceMismatchError: "aud" does not contain the audience.
            TokenExpiredError: expired or not yet valid.
        """
        header = read_unverified_header(token)

        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise MalformedTokenError("No key ID found in token header")

        algorithm = header.get("alg")
        if algorithm not in self.algorithms:
            raise SignatureInvalidError(f"Signing algorithm {algorithm!r} is not allowed")

        signing_key = await self.key_resolver.get_signing_key(self.issuer, kid)

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                leeway=self.leeway,
                options={"require": REQUIRED_CLAIMS, "verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.ImmatureSignatureError as e:
            raise TokenExpiredError("Token is not yet valid") from e
        except jwt.InvalidIssuerError as e:
            raise IssuerMismatchError(f"Token issuer does not match {self.issuer}") from e
        except jwt.InvalidAudienceError as e:
            raise AudienceMismatchError(f"Token audience does not include {self.audience}") from e
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError, jwt.InvalidKeyError) as e:
            raise SignatureInvalidError(f"Token signature is invalid: {e}") from e
        except TypeError as e:
            # PyJWT raises TypeError when the key type does not fit the algorithm family
            raise SignatureInvalidError(f"Key {kid} cannot verify {algorithm} signatures") from e
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Token is invalid: {e}") from e

        try:
            claims = VerifiedClaims.from_payload(payload)
        except (TypeError, ValueError) as e:
            raise MalformedTokenError(f"Token claims have unexpected types: {e}") from e

        logger.debug(f"[JWT] Token verified for subject {claims.subject}")
        return claims
