# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for solidpod.

All solidpod exceptions inherit from SolidPodError, so callers can render
any failure from the client layer with a single ``except`` clause while
still telling credential problems apart from transport problems.
"""

from __future__ import annotations

from typing import Any, Optional


class SolidPodError(Exception):
    """Base exception for all solidpod errors."""


class ConfigurationError(SolidPodError):
    """Invalid or incomplete client configuration."""


class StorageError(SolidPodError):
    """Errors related to the credential store backend."""


class IdentityError(SolidPodError):
    """Errors related to identity records and key material."""


class ProofGenerationFailed(IdentityError):
    """A DPoP key pair could not be generated, loaded, or used for signing.

    Always fatal: sending a request with an invalid proof would only move
    the failure to the server.
    """


class AuthenticationError(SolidPodError):
    """Errors raised by the OIDC flow or token resolution."""


class ClientRegistrationFailed(AuthenticationError):
    """Dynamic client registration was rejected by the provider."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status={self.status}, body={self.body!r})"


class ClientNotRegistered(AuthenticationError):
    """No stored client registration exists for the requested client name."""


class TokenExchangeFailed(AuthenticationError):
    """The token endpoint returned an error instead of a token set."""

    def __init__(
        self,
        error: str,
        description: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.error = error
        self.description = description
        self.status = status
        message = f"{error}: {description}" if description else error
        super().__init__(message)


class NoCredentialsAvailable(AuthenticationError):
    """Neither a user token nor client credentials are stored for the identity."""


class AccountSetupFailed(AuthenticationError):
    """Account login or client-credentials creation did not complete."""


class ProtocolError(SolidPodError):
    """Errors talking to the Solid server."""


class RequestFailed(ProtocolError):
    """The HTTP request never produced a response (connect, read, TLS...)."""

    def __init__(self, method: str, url: str, reason: str) -> None:
        self.method = method.upper()
        self.url = url
        self.reason = reason
        super().__init__(f"{self.method} {url} failed: {reason}")


class ResourceRequestFailed(ProtocolError):
    """The server answered a resource request with a non-success status."""

    def __init__(self, url: str, status: int, body: str = "", action: str = "request") -> None:
        self.url = url
        self.status = status
        self.body = body
        self.action = action
        super().__init__(f"{action} {url} returned {status}: {body[:200]}")


class ResourceCreationFailed(ProtocolError):
    """Every container creation strategy was rejected."""

    def __init__(self, url: str, attempts: list[Any]) -> None:
        self.url = url
        self.attempts = list(attempts)
        summary = ", ".join(f"{a.strategy}={a.status}" for a in self.attempts)
        super().__init__(f"Could not create container under {url} ({summary})")


class PermissionCheckFailed(ProtocolError):
    """A permission check could not confirm access."""


class ImportPartialFailure(SolidPodError):
    """A single item of an import batch failed."""

    def __init__(self, resource_type: str, item_key: str, reason: str) -> None:
        self.resource_type = resource_type
        self.item_key = item_key
        self.reason = reason
        super().__init__(f"{resource_type}/{item_key}: {reason}")


__all__ = [
    "SolidPodError",
    "ConfigurationError",
    "StorageError",
    "IdentityError",
    "ProofGenerationFailed",
    "AuthenticationError",
    "ClientRegistrationFailed",
    "ClientNotRegistered",
    "TokenExchangeFailed",
    "NoCredentialsAvailable",
    "AccountSetupFailed",
    "ProtocolError",
    "RequestFailed",
    "ResourceRequestFailed",
    "ResourceCreationFailed",
    "PermissionCheckFailed",
    "ImportPartialFailure",
]
