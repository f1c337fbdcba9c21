"""
RDF parsing and named extraction rules.

Documents fetched from a Solid server are parsed into an ``rdflib.Graph``
and facts are pulled out by small :class:`ExtractionRule` objects. Each
rule lists equivalent predicates from different vocabularies; rules
never raise, they return an empty list when nothing matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from rdflib import BNode, Graph, Literal, Namespace, URIRef
from rdflib.term import Node

logger = logging.getLogger(__name__)

ACL = Namespace("http://www.w3.org/ns/auth/acl#")
DC = Namespace("http://purl.org/dc/terms/")
FOAF = Namespace("http://xmlns.com/foaf/0.1/")
LDP = Namespace("http://www.w3.org/ns/ldp#")
PIM = Namespace("http://www.w3.org/ns/pim/space#")
SCHEMA = Namespace("http://schema.org/")
SCHEMA_HTTPS = Namespace("https://schema.org/")
SOLID = Namespace("http://www.w3.org/ns/solid/terms#")
VCARD = Namespace("http://www.w3.org/2006/vcard/ns#")

TURTLE = "text/turtle"

_FORMATS = {
    "text/turtle": "turtle",
    "application/x-turtle": "turtle",
    "text/n3": "n3",
    "application/n-triples": "nt",
    "application/ld+json": "json-ld",
    "application/json": "json-ld",
    "application/rdf+xml": "xml",
}


def rdf_format(content_type: Optional[str]) -> str:
    """rdflib parser name for a ``Content-Type`` value; Turtle when unknown."""
    if not content_type:
        return "turtle"
    media_type = content_type.split(";", 1)[0].strip().lower()
    return _FORMATS.get(media_type, "turtle")


def parse_document(text: str, content_type: Optional[str] = None, base: Optional[str] = None) -> Graph:
    """Parse ``text`` into a graph; relative IRIs resolve against ``base``.

    A document that does not parse yields an empty graph and a warning.
    """
    graph = Graph()
    if not text or not text.strip():
        return graph
    fmt = rdf_format(content_type)
    try:
        graph.parse(data=text, format=fmt, publicID=base)
    except Exception as e:  # rdflib parsers raise unrelated exception types
        logger.warning("Could not parse %s document at %s: %s", fmt, base, e)
        return Graph()
    return graph


def _mailto(value: str) -> str:
    return value[len("mailto:"):] if value.lower().startswith("mailto:") else value


@dataclass(frozen=True)
class ExtractionRule:
    """One named fact and the predicates that may carry it.

    Attributes:
        name: Rule name, used in logs.
        predicates: Equivalent predicates, tried in order.
        first_only: Stop at the first predicate that yields a value.
        transform: Applied to each extracted string.
    """

    name: str
    predicates: tuple[URIRef, ...]
    first_only: bool = False
    transform: Optional[Callable[[str], str]] = None

    def _value(self, graph: Graph, node: Node) -> Optional[str]:
        # vcard:hasEmail and friends may point at a node carrying vcard:value
        if isinstance(node, BNode):
            node = graph.value(node, VCARD.value)
            if node is None:
                return None
        if isinstance(node, (URIRef, Literal)):
            value = str(node).strip()
            if not value:
                return None
            return self.transform(value) if self.transform else value
        return None

    def _collect(self, graph: Graph, subject: Optional[Node]) -> list[str]:
        found: list[str] = []
        for predicate in self.predicates:
            matched = False
            for obj in graph.objects(subject, predicate):
                value = self._value(graph, obj)
                if value is not None and value not in found:
                    found.append(value)
                    matched = True
            if matched and self.first_only:
                return found[:1]
        return found

    def apply(self, graph: Graph, subject: Optional[str] = None) -> list[str]:
        """Extract values, preferring triples about ``subject`` when one is given."""
        if subject is not None:
            found = self._collect(graph, URIRef(subject))
            if found:
                return found
        return self._collect(graph, None)

    def first(self, graph: Graph, subject: Optional[str] = None) -> Optional[str]:
        values = self.apply(graph, subject)
        return values[0] if values else None


STORAGE = ExtractionRule(
    "storage",
    (PIM.storage, SOLID.storage, SOLID.storageQuota, LDP.contains),
)
NAME = ExtractionRule(
    "name",
    (FOAF.name, VCARD.fn, SCHEMA.name, SCHEMA_HTTPS.name),
    first_only=True,
)
EMAIL = ExtractionRule(
    "email",
    (FOAF.mbox, VCARD.hasEmail, SCHEMA.email, SCHEMA_HTTPS.email),
    first_only=True,
    transform=_mailto,
)
INBOX = ExtractionRule("inbox", (LDP.inbox,), first_only=True)
OIDC_ISSUER = ExtractionRule("oidc_issuer", (SOLID.oidcIssuer,))
CONTAINS = ExtractionRule("contains", (LDP.contains,))
