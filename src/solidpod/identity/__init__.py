"""
Identity & key material

Per-(tenant, user) identity records, their persistence, encrypted secrets,
and the DPoP key pairs and proofs bound to each identity scope.
"""

from .models import Identity, TokenSet, ClientRegistration, DPoPKeyPair
from .repository import IdentityRepository
from .secrets import SecretCipher
from .jwk import base64url_encode, rsa_public_jwk, jwk_thumbprint
from .keystore import DPoPKeyStore, DEFAULT_SCOPE
from .dpop import DPoPProofMinter, access_token_hash, normalize_htu

__all__ = [
    "Identity",
    "TokenSet",
    "ClientRegistration",
    "DPoPKeyPair",
    "IdentityRepository",
    "SecretCipher",
    "base64url_encode",
    "rsa_public_jwk",
    "jwk_thumbprint",
    "DPoPKeyStore",
    "DEFAULT_SCOPE",
    "DPoPProofMinter",
    "access_token_hash",
    "normalize_htu",
]
