# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
DPoP Key Store

Owns one RSA key pair per identity scope, persisted in the credential store
so every worker signs with the same key. Creation is lazy and first-writer-
wins: concurrent callers for the same scope converge on the single
persisted key pair.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import ValidationError

from solidpod.exceptions import IdentityError, ProofGenerationFailed
from solidpod.identity.jwk import jwk_thumbprint, load_private_key, private_key_to_pem, rsa_public_jwk
from solidpod.identity.models import DPoPKeyPair
from solidpod.storage import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "default"


class DPoPKeyStore:
    """Persisted DPoP key pairs keyed by identity scope.

    Args:
        store: Credential store holding the serialized key pairs.
        key_size: RSA modulus size in bits. Defaults to 2048.

    Example:
        >>> keys = DPoPKeyStore(MemoryCredentialStore())
        >>> pair = keys.get_or_create("acme:alice")
        >>> pair == keys.get_or_create("acme:alice")
        True
    """

    KEY_PREFIX = "dpop:keypair:"

    def __init__(self, store: CredentialStore, key_size: int = 2048) -> None:
        self._store = store
        self._key_size = key_size
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._loaded: dict[str, tuple[DPoPKeyPair, rsa.RSAPrivateKey]] = {}

    def _key(self, scope: str) -> str:
        return f"{self.KEY_PREFIX}{scope}"

    def _lock_for(self, scope: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = self._locks[scope] = threading.Lock()
            return lock

    def _read(self, scope: str) -> Optional[DPoPKeyPair]:
        raw = self._store.get(self._key(scope))
        if raw is None:
            return None
        try:
            pair = DPoPKeyPair.model_validate_json(raw)
        except ValidationError as e:
            raise ProofGenerationFailed(f"Stored DPoP key pair for scope {scope} is corrupt") from e
        if not pair.private_key_pem or not pair.public_jwk:
            raise ProofGenerationFailed(f"Stored DPoP key pair for scope {scope} is incomplete")
        return pair

    def _generate(self) -> DPoPKeyPair:
        try:
            private_key = rsa.generate_private_key(public_exponent=65537, key_size=self._key_size)
            return DPoPKeyPair(
                private_key_pem=private_key_to_pem(private_key),
                public_jwk=rsa_public_jwk(private_key.public_key()),
            )
        except (ValueError, TypeError, IdentityError) as e:
            raise ProofGenerationFailed(f"DPoP key generation failed: {e}") from e

    def get(self, scope: str = DEFAULT_SCOPE) -> Optional[DPoPKeyPair]:
        """Return the persisted key pair for ``scope`` without creating one."""
        return self._read(scope)

    def get_or_create(self, scope: str = DEFAULT_SCOPE) -> DPoPKeyPair:
        """Return the key pair for ``scope``, generating and persisting it on first use.

        Raises:
            ProofGenerationFailed: If generation fails or the stored material
                cannot be read back.
        """
        existing = self._read(scope)
        if existing is not None:
            return existing

        with self._lock_for(scope):
            existing = self._read(scope)
            if existing is not None:
                return existing

            candidate = self._generate()
            if self._store.set_if_absent(self._key(scope), candidate.model_dump_json()):
                logger.info(
                    "Generated DPoP key pair for scope %s (jkt=%s)", scope, jwk_thumbprint(candidate.public_jwk)
                )
                return candidate

            # Another process won the race; use its key.
            winner = self._read(scope)
            if winner is None:
                raise ProofGenerationFailed(f"DPoP key pair for scope {scope} vanished during creation")
            logger.debug("Reusing concurrently created DPoP key pair for scope %s", scope)
            return winner

    def private_key(self, scope: str = DEFAULT_SCOPE) -> tuple[DPoPKeyPair, rsa.RSAPrivateKey]:
        """Return the key pair together with its loaded private key object."""
        pair = self.get_or_create(scope)
        cached = self._loaded.get(scope)
        if cached is not None and cached[0] == pair:
            return cached
        try:
            loaded = (pair, load_private_key(pair.private_key_pem))
        except IdentityError as e:
            raise ProofGenerationFailed(f"Cannot load DPoP private key for scope {scope}: {e}") from e
        self._loaded[scope] = loaded
        return loaded

    def clear(self, scope: str = DEFAULT_SCOPE) -> bool:
        """Delete the key pair for ``scope``. The next request regenerates it."""
        with self._lock_for(scope):
            self._loaded.pop(scope, None)
            removed = self._store.delete(self._key(scope))
        if removed:
            logger.info("Deleted DPoP key pair for scope %s", scope)
        return removed
