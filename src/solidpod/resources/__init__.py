"""
Pod resources for solidpod.

Container and resource orchestration, ACL policies, and WebID profiles.
"""

from .orchestrator import (
    CREATION_STRATEGIES,
    ContainerCreation,
    ContainerEntry,
    CreationAttempt,
    ResourceOrchestrator,
    container_metadata,
)
from .acl import AclPolicyManager, acl_document, acl_url, parse_wac_allow
from .profile import (
    Profile,
    ProfileResolver,
    derive_pod_root,
    extract_webid,
    extract_webid_from_id_token,
)

__all__ = [
    "CREATION_STRATEGIES",
    "ContainerCreation",
    "ContainerEntry",
    "CreationAttempt",
    "ResourceOrchestrator",
    "container_metadata",
    "AclPolicyManager",
    "acl_document",
    "acl_url",
    "parse_wac_allow",
    "Profile",
    "ProfileResolver",
    "derive_pod_root",
    "extract_webid",
    "extract_webid_from_id_token",
]
