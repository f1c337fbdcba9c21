# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
WebID Profile Resolver

Turns a WebID into identity facts: storage roots, display name, email,
inbox and OIDC issuer. Profiles in the wild use several vocabularies for
the same fact, so each fact is read through a named extraction rule
(see :mod:`solidpod.resources.rdf`). Missing facts are ``None`` or empty,
never an error.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urldefrag, urlsplit

from jose import jwt
from jose.exceptions import JOSEError
from pydantic import BaseModel, Field

from solidpod.exceptions import ResourceRequestFailed
from solidpod.identity.models import Identity
from solidpod.resources import rdf
from solidpod.transport.base import HttpTransport
from solidpod.transport.client import SolidClient

logger = logging.getLogger(__name__)

PROFILE_ACCEPT = "text/turtle, application/ld+json;q=0.9, */*;q=0.1"


class Profile(BaseModel):
    """Facts read from a WebID profile document."""

    webid: str
    document_url: str
    name: Optional[str] = None
    email: Optional[str] = None
    inbox: Optional[str] = None
    storage: list[str] = Field(default_factory=list)
    issuers: list[str] = Field(default_factory=list)

    @property
    def pod_root(self) -> str:
        """First declared storage root, or the root derived from the WebID."""
        return self.storage[0] if self.storage else derive_pod_root(self.webid)


def extract_webid(claims: Optional[Mapping[str, Any]]) -> Optional[str]:
    """WebID from ID token claims: ``webid`` first, then ``sub``."""
    if not claims:
        return None
    for claim in ("webid", "sub"):
        value = claims.get(claim)
        if value:
            return str(value)
    return None


def extract_webid_from_id_token(id_token: str) -> Optional[str]:
    """Read the WebID from an ID token without verifying its signature."""
    try:
        claims = jwt.get_unverified_claims(id_token)
    except JOSEError as e:
        logger.warning("ID token is not a decodable JWT: %s", e)
        return None
    return extract_webid(claims)


def derive_pod_root(webid: str) -> str:
    """Guess the storage root from the WebID's first path segment.

    ``http://solid:3000/alice/profile/card#me`` -> ``http://solid:3000/alice/``
    """
    parts = urlsplit(urldefrag(webid)[0])
    base = f"{parts.scheme}://{parts.netloc}/"
    directories = [s for s in parts.path.split("/")[:-1] if s]
    if not directories:
        return base
    return f"{base}{directories[0]}/"


def parse_profile(webid: str, document_url: str, graph) -> Profile:
    """Apply the profile extraction rules to a parsed graph."""
    return Profile(
        webid=webid,
        document_url=document_url,
        name=rdf.NAME.first(graph, webid),
        email=rdf.EMAIL.first(graph, webid),
        inbox=rdf.INBOX.first(graph, webid),
        storage=rdf.STORAGE.apply(graph, webid),
        issuers=rdf.OIDC_ISSUER.apply(graph, webid),
    )


class ProfileResolver:
    """Fetches and reads WebID profile documents.

    Args:
        client: Authenticated client, used when an identity is given.
        transport: Raw transport for public profile reads.
    """

    def __init__(self, client: SolidClient, transport: Optional[HttpTransport] = None) -> None:
        self.client = client
        self.transport = transport or client.transport

    def _get(self, identity: Optional[Identity], url: str):
        headers = {"Accept": PROFILE_ACCEPT}
        if identity is None:
            return self.transport.send("GET", url, headers=headers)
        return self.client.get(identity, url, headers=headers)

    def fetch_profile(self, identity: Optional[Identity], webid: str) -> Profile:
        """Fetch and parse the profile document of ``webid``.

        Raises:
            ResourceRequestFailed: On a non-success status.
        """
        document_url = urldefrag(webid)[0]
        response = self._get(identity, document_url)
        if not response.is_success:
            raise ResourceRequestFailed(document_url, response.status_code, response.text, action="fetch profile")

        graph = rdf.parse_document(response.text, response.headers.get("content-type"), base=document_url)
        profile = parse_profile(webid, document_url, graph)
        logger.info(
            "Parsed profile %s (storage=%d, name=%s)", webid, len(profile.storage), profile.name is not None
        )
        return profile

    def discover_issuer(self, webid: str, identity: Optional[Identity] = None) -> Optional[str]:
        """First ``solid:oidcIssuer`` declared by the profile, without trailing slash."""
        profile = self.fetch_profile(identity, webid)
        if not profile.issuers:
            return None
        return profile.issuers[0].rstrip("/")
