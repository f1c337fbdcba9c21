"""
Protocol Request Layer

Every call to a protected resource goes through :class:`SolidClient`: the
access token is resolved for the identity and a fresh DPoP proof, bound to
this request's method, URL and token, is minted for each call.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from solidpod.identity.models import Identity
from solidpod.transport.base import HttpTransport

logger = logging.getLogger(__name__)


class SolidClient:
    """Authenticated requests on behalf of an identity.

    Args:
        transport: HTTP transport bound to the Solid server.
        resolver: Access token resolver producing ``Authorization``/``DPoP`` headers.
    """

    def __init__(self, transport: HttpTransport, resolver) -> None:
        self.transport = transport
        self.resolver = resolver

    def request(
        self,
        identity: Identity,
        method: str,
        uri: str,
        *,
        content: Optional[str | bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Send an authenticated request.

        Raises:
            NoCredentialsAvailable: If the identity has no usable credential.
            ProofGenerationFailed: If the DPoP proof cannot be minted.
            RequestFailed: If no response was received.
        """
        url = self.transport.absolute(uri)
        merged = dict(headers or {})
        merged.update(self.resolver.authorization_headers(identity, method, url))
        return self.transport.send(method, url, headers=merged, content=content)

    def get(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "GET", uri, **kwargs)

    def head(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "HEAD", uri, **kwargs)

    def post(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "POST", uri, **kwargs)

    def put(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "PUT", uri, **kwargs)

    def patch(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "PATCH", uri, **kwargs)

    def delete(self, identity: Identity, uri: str, **kwargs) -> httpx.Response:
        return self.request(identity, "DELETE", uri, **kwargs)
