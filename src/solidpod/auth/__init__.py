"""
Authentication for solidpod.

OIDC discovery, PKCE, the registration/authorization/token-exchange flow,
access token resolution, and account-credential setup.
"""

from .discovery import OIDCDiscovery
from .pkce import challenge_for, generate_verifier
from .oidc import AuthState, OIDCAuthenticator, basic_authorization, select_client_auth
from .resolver import AccessTokenResolver
from .account import AccountCredentialService

__all__ = [
    "OIDCDiscovery",
    "challenge_for",
    "generate_verifier",
    "AuthState",
    "OIDCAuthenticator",
    "basic_authorization",
    "select_client_auth",
    "AccessTokenResolver",
    "AccountCredentialService",
]
