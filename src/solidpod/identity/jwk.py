"""
JWK (JSON Web Key) export for DPoP key material.

Provides RFC 7517 public JWK serialization for RSA keys plus the RFC 7638
thumbprint servers use to bind DPoP tokens to a key.
"""

from __future__ import annotations

import base64
import hashlib
import json

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from solidpod.exceptions import IdentityError


def base64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding per RFC 7515."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _int_to_b64(value: int) -> str:
    length = max(1, (value.bit_length() + 7) // 8)
    return base64url_encode(value.to_bytes(length, "big"))


def rsa_public_jwk(public_key: rsa.RSAPublicKey) -> dict[str, str]:
    """Export an RSA public key as a JWK.

    Only the required members (``kty``, ``n``, ``e``) are included, so the
    JWK can be embedded directly in a DPoP proof header.

    Raises:
        IdentityError: If ``public_key`` is not an RSA key.
    """
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise IdentityError(f"Unsupported key type: {type(public_key).__name__}, expected RSA")

    numbers = public_key.public_numbers()
    return {
        "kty": "RSA",
        "n": _int_to_b64(numbers.n),
        "e": _int_to_b64(numbers.e),
    }


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """Load an unencrypted PEM private key.

    Raises:
        IdentityError: If the PEM is malformed or not an RSA key.
    """
    try:
        key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError) as e:
        raise IdentityError(f"Invalid private key PEM: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise IdentityError("DPoP private key must be RSA")
    return key


def private_key_to_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def jwk_thumbprint(jwk: dict[str, str]) -> str:
    """Compute the RFC 7638 SHA-256 thumbprint of an RSA public JWK."""
    if jwk.get("kty") != "RSA" or "n" not in jwk or "e" not in jwk:
        raise IdentityError("Thumbprint requires an RSA JWK with 'n' and 'e'")
    canonical = json.dumps(
        {"e": jwk["e"], "kty": "RSA", "n": jwk["n"]},
        separators=(",", ":"),
        sort_keys=True,
    )
    return base64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())
