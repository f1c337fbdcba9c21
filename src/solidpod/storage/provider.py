"""
Abstract Credential Store Interface.

Defines the contract every credential store backend must implement. The
client layer keeps client registrations, DPoP key material, and OIDC session
values here, always under keys that embed the identity scope.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """Configuration for the credential store."""

    backend: str = Field(default="memory", description="Store backend type (memory, redis)")
    prefix: str = Field(default="solidpod:", description="Prefix applied to every key")

    # Redis-specific
    redis_url: str = Field(default="redis://localhost:6379/0")
    timeout_seconds: int = Field(default=5, ge=1, le=300, description="Socket timeout")


class CredentialStore(ABC):
    """
    Abstract credential store.

    A plain key-value interface; backends only guarantee per-key atomicity.
    ``set_if_absent`` is the single compare-and-set primitive and is what
    makes first-writer-wins key creation possible across processes.
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        self.config = config or StoreConfig()

    def _key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    def _strip(self, key: str) -> str:
        return key[len(self.config.prefix):] if key.startswith(self.config.prefix) else key

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get value by key."""

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Set value, overwriting any existing one."""

    @abstractmethod
    def set_if_absent(self, key: str, value: str) -> bool:
        """Set value only if the key does not exist. Returns True if written."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns True if something was removed."""

    @abstractmethod
    def scan_prefix(self, prefix: str) -> dict[str, str]:
        """Return every key/value pair whose key starts with ``prefix``."""

