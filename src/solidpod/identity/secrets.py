"""
Secret encryption for stored identity fields.

Client secrets and service-account passwords are kept as Fernet tokens so
a dump of the credential store does not leak usable credentials.
"""

from __future__ import annotations

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from solidpod.exceptions import ConfigurationError, IdentityError


class SecretCipher:
    """Symmetric encryption for identity secrets.

    Args:
        key: A urlsafe-base64 32-byte Fernet key. ``None`` generates an
            ephemeral key, which is only useful for tests and single-process
            deployments.

    Example:
        >>> cipher = SecretCipher()
        >>> token = cipher.encrypt("s3cret")
        >>> cipher.decrypt(token)
        's3cret'
    """

    def __init__(self, key: Optional[str | bytes] = None) -> None:
        if key is None:
            key = Fernet.generate_key()
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid secret key: {e}") from e

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise IdentityError("Stored secret cannot be decrypted with the configured key") from e
