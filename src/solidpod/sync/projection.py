"""
Entity projections

Maps domain entities to Turtle documents. Each supported resource type
has a :class:`Projection`: the RDF class of its documents and the ordered
list of ``(property, attribute)`` pairs copied from the entity. Entities
may be mappings or plain objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from rdflib import RDF, BNode, Graph, Literal, Namespace, URIRef
from rdflib.namespace import XSD

from solidpod.exceptions import ConfigurationError
from solidpod.resources.rdf import DC, FOAF
from solidpod.utils import slugify

FB = Namespace("http://fleetbase.io/ns/")
VEHICLE = Namespace("http://fleetbase.io/ontology/vehicle#")
FLEET = Namespace("http://fleetbase.io/ontology/fleet#")

SYNC_SOURCE = "solidpod"


@dataclass(frozen=True)
class Projection:
    rdf_class: str
    fields: tuple[tuple[str, str], ...]


_TIMESTAMPS = (("created_at", "created_at"), ("updated_at", "updated_at"))

PROJECTIONS: dict[str, Projection] = {
    "vehicles": Projection(
        "Vehicle",
        (
            ("name", "name"),
            ("make", "make"),
            ("model", "model"),
            ("year", "year"),
            ("vin", "vin"),
            ("plate_number", "plate_number"),
            ("status", "status"),
        ) + _TIMESTAMPS,
    ),
    "drivers": Projection(
        "Driver",
        (
            ("name", "name"),
            ("email", "email"),
            ("phone", "phone"),
            ("license_number", "drivers_license_number"),
            ("status", "status"),
        ) + _TIMESTAMPS,
    ),
    "contacts": Projection(
        "Contact",
        (
            ("name", "name"),
            ("email", "email"),
            ("phone", "phone"),
            ("type", "type"),
        ) + _TIMESTAMPS,
    ),
    "orders": Projection(
        "Order",
        (
            ("tracking_number", "public_id"),
            ("status", "status"),
            ("type", "type"),
            ("scheduled_at", "scheduled_at"),
        ) + _TIMESTAMPS,
    ),
}


def field_value(entity: Any, name: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def entity_key(entity: Any, position: int) -> str:
    """``id`` or ``public_id`` of the entity, else ``item<position>`` (1-based)."""
    for attribute in ("id", "public_id"):
        value = field_value(entity, attribute)
        if value not in (None, ""):
            return str(value)
    return f"item{position}"


def to_literal(value: Any) -> Literal:
    """Typed literal: booleans, numbers and timestamps keep their XSD type."""
    if isinstance(value, (bool, int, float, Decimal, datetime, date)):
        return Literal(value)
    return Literal(str(value))


def projection_for(resource_type: str) -> Projection:
    try:
        return PROJECTIONS[resource_type]
    except KeyError:
        raise ConfigurationError(f"No projection for resource type '{resource_type}'") from None


def serialize_entity(resource_type: str, entity: Any, key: str) -> str:
    """Turtle document for one entity of ``resource_type``."""
    projection = projection_for(resource_type)
    base = Namespace(f"{FB}{resource_type}/")

    graph = Graph()
    graph.bind("fb", FB)
    graph.bind(f"fb{resource_type}", base)

    subject = base[key]
    graph.add((subject, RDF.type, FB[projection.rdf_class]))
    graph.add((subject, FB.id, Literal(key)))
    for prop, attribute in projection.fields:
        value = field_value(entity, attribute)
        if value is None or value == "":
            continue
        graph.add((subject, FB[prop], to_literal(value)))
    return graph.serialize(format="turtle")


def vehicle_filename(vehicle: Any) -> str:
    identifier = field_value(vehicle, "plate_number") or field_value(vehicle, "vin") or entity_key(vehicle, 0)
    return f"vehicle-{slugify(identifier, default='vehicle')}.ttl"


def _party(graph: Graph, rdf_class: URIRef, party: Any) -> Optional[BNode]:
    if not party:
        return None
    node = BNode()
    graph.add((node, RDF.type, rdf_class))
    name = field_value(party, "name")
    if name:
        graph.add((node, FOAF.name, Literal(str(name))))
    identifier = field_value(party, "id") or field_value(party, "uuid")
    if identifier:
        graph.add((node, DC.identifier, Literal(str(identifier))))
    return node


def vehicle_document(vehicle: Any, document_url: str, synced_at: Optional[datetime] = None) -> str:
    """Turtle for one vehicle with its location, driver and vendor."""
    key = entity_key(vehicle, 0)
    graph = Graph()
    for prefix, namespace in (("dc", DC), ("foaf", FOAF), ("vehicle", VEHICLE), ("fleet", FLEET)):
        graph.bind(prefix, namespace)

    subject = URIRef(f"{document_url}#vehicle-{slugify(key, default='vehicle')}")
    graph.add((subject, RDF.type, VEHICLE.Vehicle))
    graph.add((subject, DC.identifier, Literal(key)))

    for prop, attribute in (
        ("make", "make"),
        ("model", "model"),
        ("year", "year"),
        ("trim", "trim"),
        ("type", "type"),
        ("plateNumber", "plate_number"),
        ("vin", "vin"),
    ):
        value = field_value(vehicle, attribute)
        if value not in (None, ""):
            graph.add((subject, VEHICLE[prop], Literal(str(value))))

    status = field_value(vehicle, "status")
    if status:
        graph.add((subject, FLEET.status, Literal(str(status))))
    online = field_value(vehicle, "online")
    if online is not None:
        graph.add((subject, FLEET.online, Literal(bool(online))))

    location = field_value(vehicle, "location")
    coordinates = field_value(location, "coordinates") if location else None
    if coordinates and len(coordinates) >= 2:
        node = BNode()
        graph.add((node, RDF.type, FLEET.Location))
        graph.add((node, FLEET.longitude, Literal(str(coordinates[0]), datatype=XSD.decimal)))
        graph.add((node, FLEET.latitude, Literal(str(coordinates[1]), datatype=XSD.decimal)))
        graph.add((subject, FLEET.location, node))

    driver = _party(graph, FOAF.Person, field_value(vehicle, "driver"))
    if driver is not None:
        graph.add((subject, FLEET.assignedDriver, driver))
    vendor = _party(graph, FLEET.Vendor, field_value(vehicle, "vendor"))
    if vendor is not None:
        graph.add((subject, FLEET.vendor, vendor))

    for prop, attribute in (("created", "created_at"), ("modified", "updated_at")):
        value = field_value(vehicle, attribute)
        if value:
            graph.add((subject, DC[prop], to_literal(value)))
    graph.add((subject, FLEET.syncedAt, Literal(synced_at or datetime.now(timezone.utc))))
    graph.add((subject, FLEET.syncedFrom, Literal(SYNC_SOURCE)))
    return graph.serialize(format="turtle")
