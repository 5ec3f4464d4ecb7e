"""Tests for PKCE verifier/challenge generation."""

import re

import pytest

from oauth.pkce import (
    CHALLENGE_METHOD,
    PKCEChallengePair,
    derive_code_challenge,
    generate_code_verifier,
    generate_state,
)

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestCodeVerifier:
    def test_verifier_is_url_safe_without_padding(self):
        verifier = generate_code_verifier()

        assert URL_SAFE.match(verifier)
        assert "=" not in verifier

    def test_verifier_carries_32_bytes_of_entropy(self):
        # 32 bytes -> 43 base64url characters, the RFC 7636 minimum length
        assert len(generate_code_verifier()) == 43

    def test_verifier_rejects_low_entropy(self):
        with pytest.raises(ValueError):
            generate_code_verifier(16)

    def test_verifiers_are_unique(self):
        assert len({generate_code_verifier() for _ in range(50)}) == 50


class TestCodeChallenge:
    def test_rfc7636_appendix_b_vector(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

        assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_challenge_is_reproducible_from_verifier(self):
        for _ in range(50):
            pair = PKCEChallengePair.generate()
            assert derive_code_challenge(pair.verifier) == pair.challenge
            assert pair.matches(pair.verifier)

    def test_challenge_does_not_reveal_verifier(self):
        pair = PKCEChallengePair.generate()

        assert pair.challenge != pair.verifier
        assert pair.verifier not in repr(pair)

    def test_other_verifier_does_not_match(self):
        pair = PKCEChallengePair.generate()

        assert not pair.matches(generate_code_verifier())

    def test_method_is_s256(self):
        assert PKCEChallengePair.generate().method == CHALLENGE_METHOD == "S256"


def test_state_is_random_and_url_safe():
    states = {generate_state() for _ in range(50)}

    assert len(states) == 50
    assert all(URL_SAFE.match(state) for state in states)
