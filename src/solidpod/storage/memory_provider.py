"""
In-Memory Credential Store.

Simple in-memory implementation for development and testing.
"""

import threading
import time
from typing import Optional

from .provider import CredentialStore, StoreConfig


class MemoryCredentialStore(CredentialStore):
    """
    In-memory credential store.

    Uses a dictionary guarded by a lock. Data is lost on restart.
    Suitable for development, testing, and single-process deployments.
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        super().__init__(config)
        self._data: dict[str, str] = {}
        self._ttls: dict[str, float] = {}
        self._lock = threading.Lock()

    def _expired(self, key: str) -> bool:
        deadline = self._ttls.get(key)
        if deadline is not None and time.time() >= deadline:
            self._data.pop(key, None)
            self._ttls.pop(key, None)
            return True
        return False

    def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        full = self._key(key)
        with self._lock:
            if self._expired(full):
                return None
            return self._data.get(full)

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Set value with optional TTL."""
        full = self._key(key)
        with self._lock:
            self._data[full] = value
            if ttl_seconds is not None:
                self._ttls[full] = time.time() + ttl_seconds
            else:
                self._ttls.pop(full, None)

    def set_if_absent(self, key: str, value: str) -> bool:
        """Set value only if the key is not present."""
        full = self._key(key)
        with self._lock:
            self._expired(full)
            if full in self._data:
                return False
            self._data[full] = value
            return True

    def delete(self, key: str) -> bool:
        """Delete key."""
        full = self._key(key)
        with self._lock:
            self._ttls.pop(full, None)
            return self._data.pop(full, None) is not None

    def scan_prefix(self, prefix: str) -> dict[str, str]:
        """Return all live entries under ``prefix``."""
        full_prefix = self._key(prefix)
        with self._lock:
            keys = [k for k in self._data if k.startswith(full_prefix)]
            return {
                self._strip(k): self._data[k]
                for k in keys
                if not self._expired(k)
            }
