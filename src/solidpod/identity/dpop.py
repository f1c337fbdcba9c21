# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
DPoP proofs (RFC 9449)

Mints the signed ``DPoP`` header value that binds one HTTP request (method
and target URI) and, for resource requests, one access token to the key
pair of the calling identity.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from typing import Callable, Optional

import httpx
from jose import jws
from jose.exceptions import JOSEError

from solidpod.exceptions import ProofGenerationFailed
from solidpod.identity.jwk import base64url_encode
from solidpod.identity.keystore import DEFAULT_SCOPE, DPoPKeyStore

logger = logging.getLogger(__name__)

DPOP_ALGORITHM = "RS256"
DPOP_TYPE = "dpop+jwt"


def normalize_htu(url: str) -> str:
    """Return the ``htu`` value for ``url``: scheme, authority and path only.

    The path is taken in the percent-encoded form httpx puts on the wire, so
    the claim matches the request target byte for byte. Query and fragment
    are always removed.
    """
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ProofGenerationFailed(f"Invalid DPoP target {url!r}: {e}") from e
    if not target.scheme or not target.host:
        raise ProofGenerationFailed(f"DPoP target must be an absolute URL: {url!r}")
    path = target.raw_path.split(b"?", 1)[0].decode("ascii") or "/"
    return f"{target.scheme.lower()}://{target.netloc.decode('ascii').lower()}{path}"


def access_token_hash(access_token: str) -> str:
    """``ath`` claim value: base64url(SHA-256(access_token))."""
    return base64url_encode(hashlib.sha256(access_token.encode("ascii")).digest())


class DPoPProofMinter:
    """Signs DPoP proof JWTs with the per-scope key pair.

    Args:
        keys: Key store that owns the per-scope key pairs.
        clock: Returns the current UNIX time; injectable for tests.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        keys: DPoPKeyStore,
        clock: Callable[[], float] = time.time,
        metrics=None,
    ) -> None:
        self.keys = keys
        self._clock = clock
        self._metrics = metrics

    def mint_proof(
        self,
        method: str,
        url: str,
        access_token: Optional[str] = None,
        scope: str = DEFAULT_SCOPE,
    ) -> str:
        """Build and sign a DPoP proof.

        Args:
            method: HTTP method of the request; uppercased into ``htm``.
            url: Absolute target URL; normalized into ``htu``.
            access_token: When given, its hash is bound as ``ath``. Token
                endpoint proofs omit it; resource request proofs include it.
            scope: Identity scope whose key pair signs the proof.

        Returns:
            The compact JWS string for the ``DPoP`` header.

        Raises:
            ProofGenerationFailed: On any key or signing failure.
        """
        pair, _ = self.keys.private_key(scope)

        headers = {"typ": DPOP_TYPE, "alg": DPOP_ALGORITHM, "jwk": dict(pair.public_jwk)}
        claims = {
            "jti": secrets.token_hex(16),
            "htm": method.upper(),
            "htu": normalize_htu(url),
            "iat": int(self._clock()),
        }
        if access_token:
            claims["ath"] = access_token_hash(access_token)

        try:
            proof = jws.sign(claims, pair.private_key_pem, headers=headers, algorithm=DPOP_ALGORITHM)
        except (JOSEError, ValueError, TypeError) as e:
            raise ProofGenerationFailed(f"Failed to sign DPoP proof: {e}") from e

        logger.debug(
            "Minted DPoP proof for %s %s (scope=%s, bound=%s)",
            claims["htm"], claims["htu"], scope, "ath" in claims,
        )
        if self._metrics is not None:
            self._metrics.record_proof(bound="ath" in claims)
        return proof
