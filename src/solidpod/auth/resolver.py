# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Access Token Resolver

Chooses the credential path for an identity on every outbound call:

1. the user-delegated OIDC access token, when one is stored (an expired
   one only when there is no client-credentials pair to fall back on);
2. otherwise a client-credentials grant with the stored id/secret;
3. otherwise :class:`~solidpod.exceptions.NoCredentialsAvailable`.

Tokens are never cached across requests; each request also gets its own
DPoP proof bound to its method, URL and token hash.
"""

from __future__ import annotations

import logging

from solidpod.auth.discovery import OIDCDiscovery
from solidpod.auth.oidc import basic_authorization, parse_token_response
from solidpod.exceptions import NoCredentialsAvailable
from solidpod.identity.dpop import DPoPProofMinter
from solidpod.identity.models import Identity
from solidpod.identity.secrets import SecretCipher
from solidpod.transport.base import HttpTransport

logger = logging.getLogger(__name__)

CLIENT_CREDENTIALS_SCOPE = "openid webid"


class AccessTokenResolver:
    """
    Resolve the access token an identity should present.

    Args:
        transport: HTTP transport for token endpoint calls.
        discovery: Issuer discovery (token endpoint lookup).
        proofs: DPoP proof minter.
        cipher: Decrypts the stored client secret.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        transport: HttpTransport,
        discovery: OIDCDiscovery,
        proofs: DPoPProofMinter,
        cipher: SecretCipher,
        metrics=None,
    ) -> None:
        self.transport = transport
        self.discovery = discovery
        self.proofs = proofs
        self.cipher = cipher
        self._metrics = metrics

    def _record(self, source: str) -> None:
        if self._metrics is not None:
            self._metrics.record_token_resolution(source)

    def resolve(self, identity: Identity) -> str:
        """Return a usable access token for ``identity``.

        Raises:
            TokenExchangeFailed: The client-credentials grant was rejected.
            NoCredentialsAvailable: Neither credential path is configured.
        """
        token = identity.access_token
        if token and identity.token_set.is_expired() and identity.has_client_credentials():
            logger.info("Access token for scope %s has expired; using client credentials", identity.scope)
        elif token:
            self._record("oidc")
            return token

        if identity.has_client_credentials():
            token = self.client_credentials_token(identity)
            self._record("client_credentials")
            return token

        self._record("none")
        raise NoCredentialsAvailable(
            f"Identity {identity.scope} has neither an OIDC token nor client credentials"
        )

    def client_credentials_token(self, identity: Identity) -> str:
        """Run the ``client_credentials`` grant with the identity's stored pair."""
        client_secret = self.cipher.decrypt(identity.client_secret)
        token_endpoint = self.discovery.token_endpoint
        headers = {
            "Accept": "application/json",
            "Authorization": basic_authorization(identity.client_id, client_secret),
            "DPoP": self.proofs.mint_proof("POST", token_endpoint, scope=identity.scope),
        }
        form = {"grant_type": "client_credentials", "scope": CLIENT_CREDENTIALS_SCOPE}

        response = self.transport.send("POST", token_endpoint, data=form, headers=headers)
        payload = parse_token_response(response)
        logger.info("Obtained client-credentials token for scope %s", identity.scope)
        return payload["access_token"]

    def authorization_headers(self, identity: Identity, method: str, url: str) -> dict[str, str]:
        """``Authorization`` and ``DPoP`` headers for one request."""
        token = self.resolve(identity)
        proof = self.proofs.mint_proof(method, url, access_token=token, scope=identity.scope)
        return {"Authorization": f"DPoP {token}", "DPoP": proof}
