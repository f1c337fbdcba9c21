# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Resource Orchestrator

Pod, container and resource operations over the authenticated client.

Container creation walks an explicit, ordered strategy list because Solid
servers disagree on which request shape they accept:

1. ``post_metadata``: POST to the parent with ``Slug`` and a metadata body
2. ``post_empty``: the same POST with an empty body
3. ``put_metadata``: PUT the metadata body straight to ``parent/name/``

The first strategy answered with 200, 201, 202 or 204 wins and is reported
back to the caller. No other operation retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional
from urllib.parse import quote, unquote, urljoin, urlsplit

from pydantic import BaseModel
from rdflib import Literal as RDFLiteral

from solidpod.exceptions import (
    AccountSetupFailed,
    ConfigurationError,
    IdentityError,
    RequestFailed,
    ResourceCreationFailed,
    ResourceRequestFailed,
)
from solidpod.identity.models import Identity
from solidpod.resources import rdf
from solidpod.transport.base import is_success
from solidpod.transport.client import SolidClient
from solidpod.utils import slugify

logger = logging.getLogger(__name__)

BASIC_CONTAINER_LINK = '<http://www.w3.org/ns/ldp#BasicContainer>; rel="type"'


class CreationAttempt(BaseModel):
    """Outcome of one container creation strategy."""

    strategy: str
    status: Optional[int] = None
    body: str = ""


class ContainerCreation(BaseModel):
    """A created container and the strategy that created it."""

    url: str
    method: str
    status: int
    attempts: list[CreationAttempt] = []


class ContainerEntry(BaseModel):
    """One member of a container listing."""

    url: str
    name: str
    kind: Literal["container", "resource"]
    source: Literal["storage", "account"] = "storage"


@dataclass(frozen=True)
class CreationStrategy:
    tag: str
    method: str
    with_body: bool


CREATION_STRATEGIES: tuple[CreationStrategy, ...] = (
    CreationStrategy("post_metadata", "POST", True),
    CreationStrategy("post_empty", "POST", False),
    CreationStrategy("put_metadata", "PUT", True),
)


def as_container_url(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


def resource_name(url: str) -> str:
    """Last non-empty path segment of ``url``, percent-decoded."""
    segments = [s for s in urlsplit(url).path.split("/") if s]
    return unquote(segments[-1]) if segments else urlsplit(url).netloc


def container_metadata(
    title: str,
    description: Optional[str] = None,
    created: Optional[datetime] = None,
) -> str:
    """Turtle describing a new container."""
    created = created or datetime.now(timezone.utc)
    lines = [
        f"@prefix dc: <{rdf.DC}> .",
        f"@prefix ldp: <{rdf.LDP}> .",
        "",
        "<> a ldp:BasicContainer, ldp:Container ;",
        f"   dc:title {RDFLiteral(title).n3()} ;",
    ]
    if description:
        lines.append(f"   dc:description {RDFLiteral(description).n3()} ;")
    lines.append(f"   dc:created {RDFLiteral(created).n3()} .")
    return "\n".join(lines) + "\n"


class ResourceOrchestrator:
    """
    Create, list, write and delete resources in a pod.

    Args:
        client: Authenticated Solid client.
        acl: ACL manager used by :meth:`create_folder` to grant the owner.
        accounts: Account API client; lets :meth:`list_pods` include the
            pods registered to the identity's account.
        metrics: Optional metrics collector.
    """

    def __init__(self, client: SolidClient, acl=None, accounts=None, metrics=None) -> None:
        self.client = client
        self.acl = acl
        self.accounts = accounts
        self._metrics = metrics

    # -- containers -----------------------------------------------------------

    def create_container(
        self,
        identity: Identity,
        parent_url: str,
        name: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ContainerCreation:
        """Create container ``name`` under ``parent_url``.

        Args:
            metadata: Optional ``title`` and ``description``; the title
                defaults to ``name``.

        Raises:
            ResourceCreationFailed: Every strategy failed; carries all attempts.
        """
        parent = as_container_url(self.client.transport.absolute(parent_url))
        slug = name.strip("/")
        metadata = metadata or {}
        body = container_metadata(metadata.get("title") or slug, metadata.get("description"))
        fallback_url = f"{parent}{quote(slug)}/"

        attempts: list[CreationAttempt] = []
        for strategy in CREATION_STRATEGIES:
            headers = {"Content-Type": rdf.TURTLE, "Link": BASIC_CONTAINER_LINK, "If-None-Match": "*"}
            if strategy.method == "POST":
                target = parent
                headers["Slug"] = quote(slug)
            else:
                target = fallback_url

            try:
                response = self.client.request(
                    identity, strategy.method, target, content=body if strategy.with_body else "", headers=headers
                )
            except RequestFailed as e:
                attempts.append(CreationAttempt(strategy=strategy.tag, status=None, body=e.reason))
                self._record(strategy.tag, False)
                logger.debug("Strategy %s for %s failed: %s", strategy.tag, fallback_url, e.reason)
                continue

            attempts.append(CreationAttempt(strategy=strategy.tag, status=response.status_code, body=response.text))
            if not is_success(response):
                self._record(strategy.tag, False)
                logger.debug("Strategy %s for %s returned %d", strategy.tag, fallback_url, response.status_code)
                continue

            self._record(strategy.tag, True)
            url = fallback_url
            location = response.headers.get("location")
            if strategy.method == "POST" and location:
                url = urljoin(parent, location)
            logger.info("Created container %s using %s", url, strategy.tag)
            return ContainerCreation(url=url, method=strategy.tag, status=response.status_code, attempts=attempts)

        logger.warning("All creation strategies failed for %s", fallback_url)
        raise ResourceCreationFailed(fallback_url, attempts)

    def _record(self, strategy: str, success: bool) -> None:
        if self._metrics is not None:
            self._metrics.record_container_strategy(strategy, success)

    def ensure_container(self, identity: Identity, container_url: str) -> int:
        """PUT an empty container at a fixed URL and return the status.

        Unlike :meth:`create_container` the URL never changes, so an
        existing container answers 409 or 412 and the caller decides.
        """
        url = as_container_url(self.client.transport.absolute(container_url))
        response = self.client.put(
            identity, url, content="", headers={"Content-Type": rdf.TURTLE, "Link": BASIC_CONTAINER_LINK}
        )
        logger.debug("Ensured container %s (%d)", url, response.status_code)
        return response.status_code

    def create_folder(
        self,
        identity: Identity,
        parent_url: str,
        name: str,
        owner_webid: Optional[str] = None,
    ) -> ContainerCreation:
        """Create a container, then make sure ``owner_webid`` may write to it."""
        creation = self.create_container(identity, parent_url, name)
        if owner_webid:
            if self.acl is None:
                raise ConfigurationError("create_folder needs an ACL manager to grant the owner")
            if not self.acl.ensure_permission(identity, creation.url, owner_webid):
                logger.warning("Created %s but could not grant write access to %s", creation.url, owner_webid)
        return creation

    def create_pod(
        self,
        identity: Identity,
        storage_url: str,
        name: str,
        description: Optional[str] = None,
    ) -> ContainerCreation:
        """Create a top-level container in the identity's storage.

        The container is named after the slug of ``name``; ``name`` itself
        becomes the title.
        """
        return self.create_container(
            identity, storage_url, slugify(name, default="pod"), {"title": name, "description": description}
        )

    # -- listing --------------------------------------------------------------

    def list_contents(self, identity: Identity, container_url: str) -> list[ContainerEntry]:
        """Members of a container, classified by trailing slash.

        Raises:
            ResourceRequestFailed: On a non-success status.
        """
        url = as_container_url(self.client.transport.absolute(container_url))
        response = self.client.get(identity, url, headers={"Accept": rdf.TURTLE})
        if not response.is_success:
            raise ResourceRequestFailed(url, response.status_code, response.text, action="list")

        graph = rdf.parse_document(response.text, response.headers.get("content-type"), base=url)
        entries = []
        for member in rdf.CONTAINS.apply(graph, url):
            if member == url:
                continue
            kind = "container" if member.endswith("/") else "resource"
            entries.append(ContainerEntry(url=member, name=resource_name(member), kind=kind))
        return entries

    def _account_pods(self, identity: Identity) -> list[ContainerEntry]:
        if self.accounts is None or not identity.has_account_credentials():
            return []
        try:
            urls = self.accounts.list_account_pods(identity)
        except (AccountSetupFailed, IdentityError, RequestFailed) as e:
            logger.warning("Account pod listing failed for %s: %s", identity.scope, e)
            return []
        return [
            ContainerEntry(url=as_container_url(u), name=resource_name(u), kind="container", source="account")
            for u in urls
        ]

    def list_pods(self, identity: Identity, storage_url: str) -> list[ContainerEntry]:
        """Pods known to the account API, then the storage root and its child containers.

        The account API is only asked when the identity holds an account
        login; a failed lookup is logged and skipped. Each URL appears once.
        """
        root = as_container_url(self.client.transport.absolute(storage_url))
        pods = self._account_pods(identity)
        pods.append(ContainerEntry(url=root, name=resource_name(root), kind="container"))
        pods.extend(e for e in self.list_contents(identity, root) if e.kind == "container")

        seen: set[str] = set()
        unique = []
        for entry in pods:
            if entry.url not in seen:
                seen.add(entry.url)
                unique.append(entry)
        return unique

    # -- resources ------------------------------------------------------------

    def write_resource(
        self,
        identity: Identity,
        url: str,
        body: str | bytes,
        content_type: str = rdf.TURTLE,
    ) -> int:
        """PUT a document, replacing any existing one. Returns the status.

        Raises:
            ResourceRequestFailed: On a non-success status.
        """
        response = self.client.put(identity, url, content=body, headers={"Content-Type": content_type})
        if not response.is_success:
            raise ResourceRequestFailed(url, response.status_code, response.text, action="write")
        logger.debug("Wrote %s (%d)", url, response.status_code)
        return response.status_code

    def delete_resource(self, identity: Identity, url: str) -> bool:
        """Delete a resource; an already missing resource counts as deleted.

        Raises:
            ResourceRequestFailed: On any other non-success status.
        """
        response = self.client.delete(identity, url)
        if response.is_success or response.status_code == 404:
            logger.info("Deleted %s (%d)", url, response.status_code)
            return True
        raise ResourceRequestFailed(url, response.status_code, response.text, action="delete")
