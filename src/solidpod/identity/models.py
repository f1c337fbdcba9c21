"""
Identity records

The per-(tenant, user) identity the client acts for, the OIDC token set
it holds, the dynamic client registration made on its behalf, and the
DPoP key pair bound to its scope.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenSet(BaseModel):
    """Tokens returned by a successful token-endpoint exchange."""

    access_token: str = Field(..., min_length=1)
    id_token: Optional[str] = Field(None)
    refresh_token: Optional[str] = Field(None)
    token_type: str = Field(default="DPoP")
    expires_in: Optional[int] = Field(None, description="Lifetime in seconds")
    scope: Optional[str] = Field(None)
    issued_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "TokenSet":
        """Build a token set from a token endpoint JSON body."""
        return cls(
            access_token=payload.get("access_token") or "",
            id_token=payload.get("id_token"),
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type") or "DPoP",
            expires_in=payload.get("expires_in"),
            scope=payload.get("scope"),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once ``expires_in`` seconds have elapsed since issuance."""
        if self.expires_in is None:
            return False
        now = now or _utcnow()
        return (now - self.issued_at).total_seconds() >= self.expires_in


class ClientRegistration(BaseModel):
    """Result of dynamic client registration against one issuer."""

    client_id: str
    client_secret: Optional[str] = None
    client_name: str
    redirect_uri: str
    issuer: Optional[str] = None
    registered_at: datetime = Field(default_factory=_utcnow)


class DPoPKeyPair(BaseModel):
    """RSA key pair used to sign DPoP proofs for one identity scope."""

    private_key_pem: str
    public_jwk: dict[str, str]
    created_at: datetime = Field(default_factory=_utcnow)


class Identity(BaseModel):
    """
    One identity per (tenant, end-user) pair.

    ``client_secret`` and ``account_password`` hold ciphertext produced by
    :class:`~solidpod.identity.secrets.SecretCipher`; they are never stored
    in the clear.
    """

    tenant_id: str
    user_id: str
    scope: str = Field(default="", description="Stable key for all stored state")

    webid: Optional[str] = None
    issuer: Optional[str] = None
    token_set: Optional[TokenSet] = None

    # Client-credentials fallback path
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    client_resource_url: Optional[str] = None

    # Service-account login, only used to provision the fallback path
    account_email: Optional[str] = None
    account_password: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _default_scope(self) -> "Identity":
        if not self.scope:
            self.scope = f"{self.tenant_id}:{self.user_id}"
        return self

    @property
    def access_token(self) -> Optional[str]:
        """The stored user-delegated access token, if any."""
        if self.token_set is None:
            return None
        return self.token_set.access_token or None

    def has_client_credentials(self) -> bool:
        """True when both halves of the client-credentials pair are stored."""
        return bool(self.client_id) and bool(self.client_secret)

    def has_account_credentials(self) -> bool:
        return bool(self.account_email) and bool(self.account_password)

    def touch(self) -> None:
        self.updated_at = _utcnow()
