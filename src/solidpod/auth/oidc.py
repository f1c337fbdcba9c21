# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
OIDC Authentication

Client side of the Solid-OIDC flow for one identity at a time:
dynamic client registration, PKCE authorization redirect, DPoP-bound
authorization-code exchange, and logout.

State is derived from what is stored, never kept in memory::

    UNREGISTERED -> REGISTERED -> AUTHORIZATION_REQUESTED -> AUTHENTICATED
                                                                 |
                                                              REVOKED

Refresh is not automatic; callers that need it re-run the flow.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote, urlencode

from pydantic import ValidationError

from solidpod.auth.discovery import OIDCDiscovery
from solidpod.auth.pkce import CHALLENGE_METHOD, challenge_for, generate_state, generate_verifier
from solidpod.config import DEFAULT_SCOPES
from solidpod.exceptions import (
    ClientNotRegistered,
    ClientRegistrationFailed,
    ConfigurationError,
    TokenExchangeFailed,
)
from solidpod.identity.dpop import DPoPProofMinter
from solidpod.identity.keystore import DEFAULT_SCOPE
from solidpod.identity.models import ClientRegistration, Identity, TokenSet
from solidpod.identity.repository import IdentityRepository
from solidpod.identity.secrets import SecretCipher
from solidpod.resources.profile import extract_webid_from_id_token
from solidpod.storage import CredentialStore
from solidpod.transport.base import HttpTransport
from solidpod.utils import slugify

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 600

AUTH_BASIC = "client_secret_basic"
AUTH_POST = "client_secret_post"


class AuthState(str, Enum):
    """Where an identity stands in the authentication flow."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    AUTHENTICATED = "authenticated"
    REVOKED = "revoked"


def basic_authorization(client_id: str, client_secret: str) -> str:
    """``Authorization`` value for HTTP Basic client authentication.

    Both halves are form-urlencoded before joining, as RFC 6749 2.3.1
    requires for the token endpoint.
    """
    raw = f"{quote(client_id, safe='')}:{quote(client_secret, safe='')}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


def select_client_auth(supported: Optional[list[str]]) -> str:
    """Choose the token-endpoint client authentication method.

    Basic wins whenever it is listed or nothing is listed; body credentials
    are used only when the provider lists ``client_secret_post`` without
    ``client_secret_basic``.
    """
    if not supported or AUTH_BASIC in supported:
        return AUTH_BASIC
    if AUTH_POST in supported:
        return AUTH_POST
    return AUTH_BASIC


class OIDCAuthenticator:
    """
    Registration, authorization and token exchange for Solid-OIDC.

    The authenticator composes its collaborators explicitly: ``discovery``
    for provider metadata, ``proofs`` for DPoP proofs (also forwarded
    through :meth:`mint_proof`), ``store`` for registrations and PKCE
    session values, and ``repository`` for identity records.

    Args:
        transport: HTTP transport for provider calls.
        discovery: Discovery document of the issuer.
        store: Credential store.
        proofs: DPoP proof minter; its key store owns the per-scope keys.
        repository: Identity persistence.
        cipher: Encrypts client secrets before they reach the store.
        client_name: Default client name for registration.
        redirect_uri: Default redirect URI for registration.
        scopes: Requested scopes; ``openid webid offline_access`` by default.
    """

    CLIENT_PREFIX = "oidc:client:"
    SESSION_PREFIX = "oidc:session:"
    REVOKED_PREFIX = "oidc:revoked:"
    SESSION_FIELDS = ("verifier", "state", "client-name")

    def __init__(
        self,
        transport: HttpTransport,
        discovery: OIDCDiscovery,
        store: CredentialStore,
        proofs: DPoPProofMinter,
        repository: IdentityRepository,
        cipher: SecretCipher,
        client_name: str = "solidpod",
        redirect_uri: Optional[str] = None,
        scopes: Optional[list[str]] = None,
    ) -> None:
        self.transport = transport
        self.discovery = discovery
        self.store = store
        self.proofs = proofs
        self.repository = repository
        self.cipher = cipher
        self.client_name = client_name
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes or DEFAULT_SCOPES)

    # -- keys -------------------------------------------------------------

    def _client_key(self, scope: str, client_name: str) -> str:
        return f"{self.CLIENT_PREFIX}{slugify(client_name, default='client')}:{scope}"

    def _session_key(self, scope: str, name: str) -> str:
        return f"{self.SESSION_PREFIX}{scope}:{name}"

    def _revoked_key(self, scope: str) -> str:
        return f"{self.REVOKED_PREFIX}{scope}"

    def _clear_session(self, scope: str) -> None:
        # Delete by exact key: one scope can be a prefix of another.
        for name in self.SESSION_FIELDS:
            self.store.delete(self._session_key(scope, name))

    # -- DPoP forwarding ---------------------------------------------------

    def mint_proof(
        self,
        method: str,
        url: str,
        access_token: Optional[str] = None,
        scope: str = DEFAULT_SCOPE,
    ) -> str:
        return self.proofs.mint_proof(method, url, access_token=access_token, scope=scope)

    # -- state -------------------------------------------------------------

    def state(self, identity: Identity) -> AuthState:
        """Derive the authentication state of ``identity`` from stored values."""
        if identity.access_token:
            return AuthState.AUTHENTICATED
        if self.store.get(self._revoked_key(identity.scope)) is not None:
            return AuthState.REVOKED
        if self.store.get(self._session_key(identity.scope, "verifier")) is not None:
            return AuthState.AUTHORIZATION_REQUESTED
        if self._has_registration(identity.scope):
            return AuthState.REGISTERED
        return AuthState.UNREGISTERED

    def _has_registration(self, scope: str) -> bool:
        for key in self.store.scan_prefix(self.CLIENT_PREFIX):
            _, _, key_scope = key[len(self.CLIENT_PREFIX):].partition(":")
            if key_scope == scope:
                return True
        return False

    # -- registration --------------------------------------------------------

    def register(
        self,
        identity: Identity,
        client_name: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        extra_params: Optional[dict[str, Any]] = None,
    ) -> ClientRegistration:
        """Dynamically register a client for ``identity``.

        Overwrites any earlier registration under the same client name.

        Raises:
            ClientRegistrationFailed: Non-success status or no ``client_id``
                in the response; the server's body is attached.
            ConfigurationError: If no redirect URI is known.
        """
        client_name = client_name or self.client_name
        redirect_uri = redirect_uri or self.redirect_uri
        if not redirect_uri:
            raise ConfigurationError("A redirect URI is required for client registration")

        body = {"client_name": client_name, "redirect_uris": [redirect_uri]}
        body.update(extra_params or {})

        endpoint = self.discovery.registration_endpoint
        response = self.transport.send(
            "POST", endpoint, json=body, headers={"Accept": "application/json"}
        )
        if not response.is_success:
            logger.warning(
                "Client registration for scope %s rejected with %d", identity.scope, response.status_code
            )
            raise ClientRegistrationFailed(
                "Client registration rejected by provider", status=response.status_code, body=response.text
            )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or not payload.get("client_id"):
            raise ClientRegistrationFailed(
                "Registration response has no client_id", status=response.status_code, body=response.text
            )

        registration = ClientRegistration(
            client_id=payload["client_id"],
            client_secret=payload.get("client_secret"),
            client_name=payload.get("client_name") or client_name,
            redirect_uri=redirect_uri,
            issuer=self.discovery.issuer,
        )
        stored = registration.model_copy()
        if stored.client_secret:
            stored.client_secret = self.cipher.encrypt(stored.client_secret)
        self.store.set(self._client_key(identity.scope, client_name), stored.model_dump_json())
        logger.info("Registered OIDC client %s for scope %s", registration.client_id, identity.scope)
        return registration

    def restore(self, identity: Identity, client_name: Optional[str] = None) -> Optional[ClientRegistration]:
        """Load a stored registration; None when there is none."""
        raw = self.store.get(self._client_key(identity.scope, client_name or self.client_name))
        if raw is None:
            return None
        try:
            registration = ClientRegistration.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable client registration for scope %s", identity.scope)
            return None
        if registration.client_secret:
            registration.client_secret = self.cipher.decrypt(registration.client_secret)
        return registration

    # -- authorization --------------------------------------------------------

    def authorize(self, identity: Identity, client_name: Optional[str] = None) -> str:
        """Build the authorization redirect URL (PKCE S256).

        Raises:
            ClientNotRegistered: If no registration is stored for the client name.
        """
        client_name = client_name or self.client_name
        registration = self.restore(identity, client_name)
        if registration is None:
            raise ClientNotRegistered(f"No client '{client_name}' registered for scope {identity.scope}")

        verifier = generate_verifier()
        state = generate_state()
        ttl = SESSION_TTL_SECONDS
        self.store.set(self._session_key(identity.scope, "verifier"), verifier, ttl_seconds=ttl)
        self.store.set(self._session_key(identity.scope, "state"), state, ttl_seconds=ttl)
        self.store.set(self._session_key(identity.scope, "client-name"), client_name, ttl_seconds=ttl)
        self.store.delete(self._revoked_key(identity.scope))

        params = {
            "response_type": "code",
            "client_id": registration.client_id,
            "redirect_uri": registration.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": challenge_for(verifier),
            "code_challenge_method": CHALLENGE_METHOD,
        }
        endpoint = self.discovery.authorization_endpoint
        separator = "&" if "?" in endpoint else "?"
        logger.info("Authorization requested for scope %s", identity.scope)
        return f"{endpoint}{separator}{urlencode(params)}"

    # -- token exchange -------------------------------------------------------

    def exchange_code(
        self,
        identity: Identity,
        code: str,
        state: Optional[str] = None,
        client_name: Optional[str] = None,
    ) -> TokenSet:
        """Exchange an authorization code for a DPoP-bound token set.

        The identity is only updated once a complete token set is in hand.

        Raises:
            ClientNotRegistered: No registration for the client name.
            TokenExchangeFailed: Provider error, state mismatch, or a
                response without an access token.
        """
        scope = identity.scope
        client_name = client_name or self.store.get(self._session_key(scope, "client-name")) or self.client_name
        registration = self.restore(identity, client_name)
        if registration is None:
            raise ClientNotRegistered(f"No client '{client_name}' registered for scope {scope}")

        expected_state = self.store.get(self._session_key(scope, "state"))
        if state and expected_state and state != expected_state:
            raise TokenExchangeFailed("invalid_state", "state does not match the authorization request")

        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": registration.redirect_uri,
        }
        verifier = self.store.get(self._session_key(scope, "verifier"))
        if verifier:
            form["code_verifier"] = verifier

        token_endpoint = self.discovery.token_endpoint
        headers = {
            "Accept": "application/json",
            "DPoP": self.proofs.mint_proof("POST", token_endpoint, scope=scope),
        }
        if not registration.client_secret:
            form["client_id"] = registration.client_id
        elif select_client_auth(self.discovery.token_auth_methods()) == AUTH_POST:
            form["client_id"] = registration.client_id
            form["client_secret"] = registration.client_secret
        else:
            headers["Authorization"] = basic_authorization(registration.client_id, registration.client_secret)

        response = self.transport.send("POST", token_endpoint, data=form, headers=headers)
        payload = parse_token_response(response)

        token_set = TokenSet.from_response(payload)
        identity.token_set = token_set
        if token_set.id_token:
            webid = extract_webid_from_id_token(token_set.id_token)
            if webid:
                identity.webid = webid
        identity.issuer = self.discovery.issuer
        self.repository.save(identity)

        self._clear_session(scope)
        self.store.delete(self._revoked_key(scope))
        logger.info("Authenticated scope %s (webid=%s)", scope, identity.webid)
        return token_set

    # -- logout ---------------------------------------------------------------

    def logout(self, identity: Identity) -> None:
        """Drop the token set and DPoP key pair; keep the client registration."""
        identity.token_set = None
        self.proofs.keys.clear(identity.scope)
        self._clear_session(identity.scope)
        self.store.set(self._revoked_key(identity.scope), datetime.now(timezone.utc).isoformat())
        self.repository.save(identity)
        logger.info("Logged out scope %s", identity.scope)


def parse_token_response(response) -> dict[str, Any]:
    """Return the token endpoint JSON body or raise :class:`TokenExchangeFailed`."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and payload.get("error"):
        raise TokenExchangeFailed(
            str(payload["error"]),
            payload.get("error_description"),
            status=response.status_code,
        )
    if not response.is_success:
        raise TokenExchangeFailed("http_error", response.text[:200] or None, status=response.status_code)
    if not isinstance(payload, dict) or not payload.get("access_token"):
        raise TokenExchangeFailed(
            "invalid_response", "token response has no access_token", status=response.status_code
        )
    return payload
