"""
OIDC discovery.

Fetches and caches the provider's ``/.well-known/openid-configuration``
document. One instance serves one issuer; the cache lives on the instance.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from solidpod.exceptions import AuthenticationError
from solidpod.transport.base import HttpTransport

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class OIDCDiscovery:
    """Discovery document for one OIDC issuer."""

    def __init__(self, transport: HttpTransport, issuer: str) -> None:
        self.transport = transport
        self.issuer = issuer.rstrip("/")
        self._document: Optional[dict[str, Any]] = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return f"{self.issuer}{WELL_KNOWN_PATH}"

    def document(self, refresh: bool = False) -> dict[str, Any]:
        """Return the discovery document, fetching it on first use.

        Raises:
            AuthenticationError: If the provider does not serve a usable document.
            RequestFailed: If the request never got a response.
        """
        with self._lock:
            if self._document is not None and not refresh:
                return self._document
            response = self.transport.send("GET", self.url, headers={"Accept": "application/json"})
            if not response.is_success:
                raise AuthenticationError(
                    f"OIDC discovery at {self.url} returned {response.status_code}"
                )
            try:
                document = response.json()
            except ValueError as e:
                raise AuthenticationError(f"OIDC discovery at {self.url} is not JSON") from e
            if not isinstance(document, dict):
                raise AuthenticationError(f"OIDC discovery at {self.url} is not a JSON object")
            logger.info("Loaded OIDC configuration for %s", self.issuer)
            self._document = document
            return document

    def endpoint(self, name: str) -> str:
        """Return a required endpoint URL from the document.

        Raises:
            AuthenticationError: If the provider does not advertise it.
        """
        value = self.document().get(name)
        if not value:
            raise AuthenticationError(f"Provider {self.issuer} does not advertise {name}")
        return value

    @property
    def registration_endpoint(self) -> str:
        return self.endpoint("registration_endpoint")

    @property
    def authorization_endpoint(self) -> str:
        return self.endpoint("authorization_endpoint")

    @property
    def token_endpoint(self) -> str:
        return self.endpoint("token_endpoint")

    @property
    def end_session_endpoint(self) -> Optional[str]:
        return self.document().get("end_session_endpoint")

    def token_auth_methods(self) -> Optional[list[str]]:
        """``token_endpoint_auth_methods_supported``, or None when unspecified."""
        methods = self.document().get("token_endpoint_auth_methods_supported")
        if methods is None:
            return None
        return [str(m) for m in methods]
