"""PKCE (RFC 7636) verifier and S256 challenge."""

import hashlib
import secrets

from solidpod.identity.jwk import base64url_encode

CHALLENGE_METHOD = "S256"


def generate_verifier(nbytes: int = 32) -> str:
    """Random code verifier; 32 bytes gives the 43-character minimum length."""
    return base64url_encode(secrets.token_bytes(nbytes))


def challenge_for(verifier: str) -> str:
    return base64url_encode(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_state() -> str:
    return secrets.token_hex(16)
