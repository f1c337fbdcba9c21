# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
ACL Policy Manager

Web Access Control for pod resources: reads the ``WAC-Allow`` header to
see what the current user may do, and writes owner policies to the
resource's companion ``.acl`` document.

Permission checks fail closed. A check that cannot be completed answers
``False`` and is logged; it never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from solidpod.exceptions import PermissionCheckFailed, RequestFailed, ResourceRequestFailed
from solidpod.identity.models import Identity
from solidpod.resources import rdf
from solidpod.transport.client import SolidClient

logger = logging.getLogger(__name__)

_WAC_GROUP = re.compile(r'(\w+)\s*=\s*"([^"]*)"')

OWNER_MODES = ("Read", "Write", "Control")
INTEGRATION_MODES = ("Read", "Append")
WRITE_MODES = frozenset({"write", "append"})


def parse_wac_allow(header: Optional[str]) -> dict[str, set[str]]:
    """Parse ``WAC-Allow: user="read write", public="read"`` into mode sets."""
    if not header:
        return {}
    return {group.lower(): set(modes.lower().split()) for group, modes in _WAC_GROUP.findall(header)}


def acl_url(resource_url: str) -> str:
    """Conventional companion ACL location of a resource or container."""
    return f"{resource_url}.acl"


def _authorization(fragment: str, agent: str, resource_url: str, modes: tuple[str, ...]) -> str:
    lines = [
        f"<#{fragment}>",
        "    a acl:Authorization ;",
        f"    acl:agent <{agent}> ;",
        f"    acl:accessTo <{resource_url}> ;",
    ]
    if resource_url.endswith("/"):
        lines.append(f"    acl:default <{resource_url}> ;")
    lines.append("    acl:mode " + ", ".join(f"acl:{m}" for m in modes) + " .")
    return "\n".join(lines)


def acl_document(resource_url: str, webid: str, secondary_principal: Optional[str] = None) -> str:
    """Owner policy for ``resource_url``; the same inputs give the same text."""
    parts = [f"@prefix acl: <{rdf.ACL}> .", "", _authorization("owner", webid, resource_url, OWNER_MODES)]
    if secondary_principal:
        parts += ["", _authorization("integration", secondary_principal, resource_url, INTEGRATION_MODES)]
    return "\n".join(parts) + "\n"


class AclPolicyManager:
    """Check and grant access on pod resources for an identity."""

    def __init__(self, client: SolidClient) -> None:
        self.client = client

    def acl_url(self, resource_url: str) -> str:
        return acl_url(self.client.transport.absolute(resource_url))

    def discover_acl_url(self, identity: Identity, resource_url: str) -> str:
        """ACL location advertised by ``Link: <...>; rel="acl"``, else the convention."""
        url = self.client.transport.absolute(resource_url)
        response = self.client.head(identity, url)
        advertised = response.links.get("acl", {}).get("url")
        if advertised:
            return urljoin(url, advertised)
        return acl_url(url)

    def _user_modes(self, identity: Identity, url: str) -> set[str]:
        response = self.client.head(identity, url)
        if not response.is_success:
            raise PermissionCheckFailed(f"HEAD {url} returned {response.status_code}")
        header = response.headers.get("wac-allow")
        if not header:
            raise PermissionCheckFailed(f"{url} did not expose WAC-Allow")
        return parse_wac_allow(header).get("user", set())

    def check_write_permission(self, identity: Identity, resource_url: str) -> bool:
        """True iff the ``user`` group of ``WAC-Allow`` includes write or append."""
        url = self.client.transport.absolute(resource_url)
        try:
            modes = self._user_modes(identity, url)
        except (PermissionCheckFailed, RequestFailed) as e:
            logger.warning("Cannot confirm write access to %s: %s", url, e)
            return False
        allowed = bool(modes & WRITE_MODES)
        logger.debug("WAC-Allow for %s: user=%s", url, sorted(modes))
        return allowed

    def grant_owner_permission(
        self,
        identity: Identity,
        resource_url: str,
        webid: str,
        secondary_principal: Optional[str] = None,
    ) -> str:
        """Overwrite the resource's ACL with an owner policy. Returns the ACL URL.

        Raises:
            ResourceRequestFailed: If the server rejects the ACL document.
        """
        url = self.client.transport.absolute(resource_url)
        location = acl_url(url)
        document = acl_document(url, webid, secondary_principal)
        response = self.client.put(identity, location, content=document, headers={"Content-Type": rdf.TURTLE})
        if not response.is_success:
            raise ResourceRequestFailed(location, response.status_code, response.text, action="write acl")
        logger.info("Granted owner access on %s to %s", url, webid)
        return location

    def ensure_permission(self, identity: Identity, resource_url: str, webid: str) -> bool:
        """Grant the owner policy unless write access is already confirmed.

        Returns False when the server rejects the grant.
        """
        if self.check_write_permission(identity, resource_url):
            return True
        try:
            self.grant_owner_permission(identity, resource_url, webid)
        except (ResourceRequestFailed, RequestFailed) as e:
            logger.warning("Could not grant %s access to %s: %s", webid, resource_url, e)
            return False
        return True
