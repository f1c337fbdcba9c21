"""
Credential stores for solidpod.

Provides the abstract key-value interface and its memory and Redis backends.
"""

from .provider import CredentialStore, StoreConfig
from .memory_provider import MemoryCredentialStore
from .redis_provider import RedisCredentialStore

__all__ = [
    "CredentialStore",
    "StoreConfig",
    "MemoryCredentialStore",
    "RedisCredentialStore",
]
