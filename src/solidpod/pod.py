# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Composition root.

:class:`SolidPod` wires every component for one Solid server from a
:class:`~solidpod.config.SolidConfig`. Every collaborator is an instance
attribute, so two ``SolidPod`` objects never share keys, caches or HTTP
clients.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from solidpod.auth import AccessTokenResolver, AccountCredentialService, OIDCAuthenticator, OIDCDiscovery
from solidpod.config import SolidConfig, build_store
from solidpod.exceptions import IdentityError
from solidpod.identity import DPoPKeyStore, DPoPProofMinter, Identity, IdentityRepository, SecretCipher
from solidpod.observability import SolidMetrics
from solidpod.resources import AclPolicyManager, ProfileResolver, ResourceOrchestrator
from solidpod.storage import CredentialStore
from solidpod.sync import ImportEngine
from solidpod.transport import HttpTransport, SolidClient

logger = logging.getLogger(__name__)


class SolidPod:
    """All client-layer components for one Solid server.

    Example:
        >>> pod = SolidPod.from_config(SolidConfig(server_url="http://solid:3000"))
        >>> identity = pod.identities.get_or_create("acme", "alice")
        >>> url = pod.auth.authorize(identity)   # after pod.auth.register(...)
    """

    def __init__(
        self,
        config: SolidConfig,
        store: CredentialStore,
        transport: HttpTransport,
        metrics: Optional[SolidMetrics] = None,
        cipher: Optional[SecretCipher] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.transport = transport
        self.metrics = metrics
        self.cipher = cipher or SecretCipher(config.secret_key)

        self.identities = IdentityRepository(store)
        self.keys = DPoPKeyStore(store)
        self.proofs = DPoPProofMinter(self.keys, metrics=metrics)
        self.discovery = OIDCDiscovery(transport, config.issuer_url)

        self.auth = OIDCAuthenticator(
            transport,
            self.discovery,
            store,
            self.proofs,
            self.identities,
            self.cipher,
            client_name=config.client_name,
            redirect_uri=config.redirect_uri,
            scopes=config.scopes,
        )
        self.resolver = AccessTokenResolver(transport, self.discovery, self.proofs, self.cipher, metrics=metrics)
        self.accounts = AccountCredentialService(transport, config.issuer_url, self.identities, self.cipher)

        self.client = SolidClient(transport, self.resolver)
        self.acl = AclPolicyManager(self.client)
        self.resources = ResourceOrchestrator(self.client, acl=self.acl, accounts=self.accounts, metrics=metrics)
        self.profiles = ProfileResolver(self.client, transport)
        self.importer = ImportEngine(self.resources, per_type_cap=config.import_cap, metrics=metrics)

        if config.secret_key is None:
            logger.warning("No secret_key configured; stored secrets will not survive a restart")

    @classmethod
    def from_config(
        cls,
        config: SolidConfig,
        store: Optional[CredentialStore] = None,
        http: Optional[httpx.Client] = None,
        metrics: Optional[SolidMetrics] = None,
    ) -> "SolidPod":
        """Build every component from ``config``.

        Args:
            store: Credential store; built from ``config.store`` when omitted.
            http: Pre-built ``httpx.Client``, e.g. one using ``httpx.MockTransport``.
            metrics: Metrics collector; none by default.
        """
        transport = HttpTransport.from_config(config, client=http, metrics=metrics)
        return cls(config, store or build_store(config), transport, metrics=metrics)

    def pod_root(self, identity: Identity) -> str:
        """Storage root of ``identity``: declared storage, else derived from the WebID."""
        if not identity.webid:
            raise IdentityError(f"Identity {identity.scope} has no WebID")
        return self.profiles.fetch_profile(identity, identity.webid).pod_root

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "SolidPod":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
