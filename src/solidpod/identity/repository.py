"""
Identity persistence.

Stores :class:`Identity` records as JSON in the credential store, keyed by
scope. Callers that keep identities elsewhere (an ORM table, a session
service) can subclass and override ``load``/``save``.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from solidpod.exceptions import StorageError
from solidpod.identity.models import Identity
from solidpod.storage import CredentialStore

logger = logging.getLogger(__name__)


class IdentityRepository:
    """Load and save identities through a credential store."""

    KEY_PREFIX = "identity:"

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def _key(self, scope: str) -> str:
        return f"{self.KEY_PREFIX}{scope}"

    def load(self, scope: str) -> Optional[Identity]:
        raw = self._store.get(self._key(scope))
        if raw is None:
            return None
        try:
            return Identity.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt identity record for scope {scope}") from e

    def save(self, identity: Identity) -> Identity:
        identity.touch()
        self._store.set(self._key(identity.scope), identity.model_dump_json())
        return identity

    def get_or_create(self, tenant_id: str, user_id: str) -> Identity:
        """Return the stored identity for a (tenant, user) pair, creating it on first use."""
        candidate = Identity(tenant_id=tenant_id, user_id=user_id)
        existing = self.load(candidate.scope)
        if existing is not None:
            return existing
        logger.info("Created identity for scope %s", candidate.scope)
        return self.save(candidate)

    def list_scopes(self) -> list[str]:
        return sorted(k[len(self.KEY_PREFIX):] for k in self._store.scan_prefix(self.KEY_PREFIX))
