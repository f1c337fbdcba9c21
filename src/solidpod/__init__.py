"""
solidpod - Solid protocol client layer for multi-tenant backends

Acts on behalf of individual end-users against a Solid server: WebID
identity, Solid-OIDC authentication with DPoP-bound tokens, LDP container
and resource management, WAC access control, and entity import.

Version: 0.1.0
"""

__version__ = "0.1.0"

# Identity & key material
from .identity import (
    Identity,
    TokenSet,
    ClientRegistration,
    DPoPKeyPair,
    IdentityRepository,
    SecretCipher,
    DPoPKeyStore,
    DPoPProofMinter,
)

# Authentication
from .auth import (
    AuthState,
    OIDCDiscovery,
    OIDCAuthenticator,
    AccessTokenResolver,
    AccountCredentialService,
)

# Transport & resources
from .transport import HttpTransport, SolidClient
from .resources import (
    ResourceOrchestrator,
    ContainerCreation,
    ContainerEntry,
    CreationAttempt,
    AclPolicyManager,
    Profile,
    ProfileResolver,
    derive_pod_root,
    extract_webid,
)

# Import / sync
from .sync import ImportEngine, ImportResult, ImportBatch

# Configuration & storage
from .config import SolidConfig, build_store, configure_logging
from .storage import CredentialStore, MemoryCredentialStore, RedisCredentialStore, StoreConfig
from .observability import SolidMetrics
from .pod import SolidPod

# Exceptions
from .exceptions import (
    SolidPodError,
    ConfigurationError,
    StorageError,
    IdentityError,
    ProofGenerationFailed,
    AuthenticationError,
    ClientRegistrationFailed,
    ClientNotRegistered,
    TokenExchangeFailed,
    NoCredentialsAvailable,
    AccountSetupFailed,
    ProtocolError,
    RequestFailed,
    ResourceRequestFailed,
    ResourceCreationFailed,
    PermissionCheckFailed,
    ImportPartialFailure,
)

__all__ = [
    "__version__",
    # Identity
    "Identity",
    "TokenSet",
    "ClientRegistration",
    "DPoPKeyPair",
    "IdentityRepository",
    "SecretCipher",
    "DPoPKeyStore",
    "DPoPProofMinter",
    # Authentication
    "AuthState",
    "OIDCDiscovery",
    "OIDCAuthenticator",
    "AccessTokenResolver",
    "AccountCredentialService",
    # Transport & resources
    "HttpTransport",
    "SolidClient",
    "ResourceOrchestrator",
    "ContainerCreation",
    "ContainerEntry",
    "CreationAttempt",
    "AclPolicyManager",
    "Profile",
    "ProfileResolver",
    "derive_pod_root",
    "extract_webid",
    # Sync
    "ImportEngine",
    "ImportResult",
    "ImportBatch",
    # Configuration & storage
    "SolidConfig",
    "build_store",
    "configure_logging",
    "CredentialStore",
    "MemoryCredentialStore",
    "RedisCredentialStore",
    "StoreConfig",
    "SolidMetrics",
    "SolidPod",
    # Exceptions
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
