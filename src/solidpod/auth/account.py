"""
Account credential setup.

Provisions the client-credentials fallback path: logs into the Solid
server's account API with a service-account email/password, creates a
client-credentials token for the identity's WebID, and stores the
resulting id/secret (secret and password encrypted) on the identity.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from solidpod.exceptions import AccountSetupFailed
from solidpod.identity.models import Identity
from solidpod.identity.repository import IdentityRepository
from solidpod.identity.secrets import SecretCipher
from solidpod.transport.base import HttpTransport

logger = logging.getLogger(__name__)

ACCOUNT_PATH = "/.account/"
DEFAULT_TOKEN_NAME = "solidpod-client"


def _json(response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise AccountSetupFailed(f"Expected JSON from {response.request.url}") from e
    if not isinstance(data, dict):
        raise AccountSetupFailed(f"Expected a JSON object from {response.request.url}")
    return data


class AccountCredentialService:
    """Account API client for one Solid server.

    Args:
        transport: HTTP transport.
        issuer: Base URL of the server's account API.
        repository: Identity persistence.
        cipher: Encrypts the stored secret and password.
    """

    def __init__(
        self,
        transport: HttpTransport,
        issuer: str,
        repository: IdentityRepository,
        cipher: SecretCipher,
    ) -> None:
        self.transport = transport
        self.issuer = issuer.rstrip("/")
        self.repository = repository
        self.cipher = cipher

    @property
    def index_url(self) -> str:
        return f"{self.issuer}{ACCOUNT_PATH}"

    def _controls(self, authorization: Optional[str] = None) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if authorization:
            headers["Authorization"] = f"CSS-Account-Token {authorization}"
        response = self.transport.send("GET", self.index_url, headers=headers)
        if not response.is_success:
            raise AccountSetupFailed(f"Account index returned {response.status_code}: {response.text[:200]}")
        controls = _json(response).get("controls")
        if not isinstance(controls, dict):
            raise AccountSetupFailed("Account index has no controls")
        return controls

    def login(self, email: str, password: str) -> str:
        """Password login; returns the account authorization token."""
        controls = self._controls()
        login_url = (controls.get("password") or {}).get("login")
        if not login_url:
            raise AccountSetupFailed("Password login endpoint not advertised")

        response = self.transport.send(
            "POST", login_url, json={"email": email, "password": password},
            headers={"Accept": "application/json"},
        )
        if not response.is_success:
            raise AccountSetupFailed(f"Account login returned {response.status_code}: {response.text[:200]}")
        authorization = _json(response).get("authorization")
        if not authorization:
            raise AccountSetupFailed("Account login response has no authorization token")
        logger.info("Account login succeeded for %s", email)
        return authorization

    def create_client_credentials(
        self,
        authorization: str,
        webid: str,
        token_name: str = DEFAULT_TOKEN_NAME,
    ) -> dict[str, Any]:
        """Create a client-credentials token bound to ``webid``.

        Returns:
            The server's token document with ``id``, ``secret`` and ``resource``.
        """
        controls = self._controls(authorization)
        endpoint = (controls.get("account") or {}).get("clientCredentials")
        if not endpoint:
            raise AccountSetupFailed("Client credentials endpoint not advertised")

        response = self.transport.send(
            "POST",
            endpoint,
            json={"name": token_name, "webId": webid},
            headers={
                "Accept": "application/json",
                "Authorization": f"CSS-Account-Token {authorization}",
            },
        )
        if not response.is_success:
            raise AccountSetupFailed(
                f"Client credentials creation returned {response.status_code}: {response.text[:200]}"
            )
        data = _json(response)
        if not data.get("id") or not data.get("secret"):
            raise AccountSetupFailed("Client credentials response is missing id or secret")
        return data

    def setup_credentials(self, identity: Identity, email: str, password: str, webid: str) -> Identity:
        """Log in, create client credentials, and store them on ``identity``."""
        authorization = self.login(email, password)
        data = self.create_client_credentials(authorization, webid)

        identity.account_email = email
        identity.account_password = self.cipher.encrypt(password)
        identity.client_id = data["id"]
        identity.client_secret = self.cipher.encrypt(data["secret"])
        identity.client_resource_url = data.get("resource")
        identity.webid = identity.webid or webid
        self.repository.save(identity)
        logger.info("Stored client credentials for scope %s", identity.scope)
        return identity

    def list_account_pods(self, identity: Identity) -> list[str]:
        """Pod URLs the server's account API lists for the identity's stored account.

        Raises:
            AccountSetupFailed: No stored account login, or the account API
                refused one of the calls.
        """
        if not identity.has_account_credentials():
            raise AccountSetupFailed(f"Identity {identity.scope} has no stored account login")
        authorization = self.login(identity.account_email, self.cipher.decrypt(identity.account_password))
        controls = self._controls(authorization)
        endpoint = (controls.get("account") or {}).get("pod")
        if not endpoint:
            raise AccountSetupFailed("Pod endpoint not advertised")

        response = self.transport.send(
            "GET",
            endpoint,
            headers={
                "Accept": "application/json",
                "Authorization": f"CSS-Account-Token {authorization}",
            },
        )
        if not response.is_success:
            raise AccountSetupFailed(f"Pod listing returned {response.status_code}: {response.text[:200]}")
        pods = _json(response).get("pods") or {}
        if not isinstance(pods, dict):
            raise AccountSetupFailed("Pod listing has no pods map")
        logger.debug("Account API lists %d pods for scope %s", len(pods), identity.scope)
        return list(pods)
