"""PKCE (RFC 7636) helpers for public clients without a client secret."""

import base64
import hashlib
import secrets
from dataclasses import dataclass, field

CHALLENGE_METHOD = "S256"
VERIFIER_BYTES = 32  # 43 characters once base64url encoded
STATE_BYTES = 16


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_verifier(num_bytes: int = VERIFIER_BYTES) -> str:
    if num_bytes < VERIFIER_BYTES:
        raise ValueError(f"Code verifier needs at least {VERIFIER_BYTES} bytes of entropy")
    return _b64url(secrets.token_bytes(num_bytes))


def derive_code_challenge(verifier: str) -> str:
    """S256 transform: base64url(SHA-256(ascii(verifier)))."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_state() -> str:
    return secrets.token_urlsafe(STATE_BYTES)


@dataclass(frozen=True)
class PKCEChallengePair:
    verifier: str = field(repr=False)
    challenge: str
    method: str = CHALLENGE_METHOD

    @classmethod
    def generate(cls) -> "PKCEChallengePair":
        verifier = generate_code_verifier()
        return cls(verifier=verifier, challenge=derive_code_challenge(verifier))

    def matches(self, verifier: str) -> bool:
        """Check a verifier the way the authorization server will."""
        return secrets.compare_digest(derive_code_challenge(verifier), self.challenge)
