# Copyright (c) Solidpod Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Import / Sync Engine

Writes domain entities into a pod as one Turtle document per entity.
Imports are best-effort: a failing item is recorded under its key and
the batch moves on. Authentication and key failures still abort, since
every later item would fail the same way.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from solidpod.exceptions import (
    AuthenticationError,
    ConfigurationError,
    IdentityError,
    ImportPartialFailure,
    ProtocolError,
)
from solidpod.identity.models import Identity
from solidpod.resources.orchestrator import ResourceOrchestrator
from solidpod.sync.projection import (
    entity_key,
    projection_for,
    serialize_entity,
    vehicle_document,
    vehicle_filename,
)

logger = logging.getLogger(__name__)

DEFAULT_PER_TYPE_CAP = 100
_FATAL = (AuthenticationError, IdentityError)


class ImportResult(BaseModel):
    """Outcome of importing one resource type."""

    resource_type: str
    count: int = 0
    errors: dict[str, str] = Field(default_factory=dict)


class ImportBatch(BaseModel):
    """Aggregated outcome of importing several resource types."""

    counts: dict[str, int] = Field(default_factory=dict)
    errors: dict[str, dict[str, str]] = Field(default_factory=dict)
    total_count: int = 0


class VehicleSyncResult(BaseModel):
    synced_count: int = 0
    failed_count: int = 0
    details: list[dict[str, str]] = Field(default_factory=list)


class ImportEngine:
    """
    Serialize entities and write them through the resource orchestrator.

    Args:
        orchestrator: Resource orchestrator for container and document writes.
        per_type_cap: Default maximum number of entities imported per type.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        orchestrator: ResourceOrchestrator,
        per_type_cap: int = DEFAULT_PER_TYPE_CAP,
        metrics=None,
    ) -> None:
        self.orchestrator = orchestrator
        self.per_type_cap = per_type_cap
        self._metrics = metrics

    def _record(self, resource_type: str, success: bool) -> None:
        if self._metrics is not None:
            self._metrics.record_import_item(resource_type, success)

    def _ensure_container(self, identity: Identity, container_url: str) -> None:
        status = self.orchestrator.ensure_container(identity, container_url)
        if status >= 400:
            # 409/412 mean it already exists; anything else shows up on the item writes
            logger.info("Container %s not created (%d); continuing", container_url, status)

    def import_entities(
        self,
        identity: Identity,
        pod_url: str,
        resource_type: str,
        entities: Iterable[Any],
        per_type_cap: Optional[int] = None,
    ) -> ImportResult:
        """Import up to ``per_type_cap`` entities into ``<pod>/<resource_type>/``.

        Raises:
            ConfigurationError: Unknown resource type.
            AuthenticationError: No usable credential for the identity.
        """
        projection_for(resource_type)
        cap = per_type_cap if per_type_cap is not None else self.per_type_cap
        container_url = f"{pod_url.rstrip('/')}/{resource_type}/"
        self._ensure_container(identity, container_url)

        result = ImportResult(resource_type=resource_type)
        for position, entity in enumerate(entities, start=1):
            if position > cap:
                logger.info("Import of %s capped at %d items", resource_type, cap)
                break
            key = f"item{position}"
            try:
                key = entity_key(entity, position)
                document = serialize_entity(resource_type, entity, key)
                self.orchestrator.write_resource(identity, f"{container_url}{quote(key, safe='')}.ttl", document)
            except _FATAL:
                raise
            except Exception as e:
                failure = ImportPartialFailure(resource_type, key, str(e))
                logger.warning("Import item failed: %s", failure)
                result.errors[key] = failure.reason
                self._record(resource_type, False)
                continue
            result.count += 1
            self._record(resource_type, True)

        logger.info(
            "Imported %d %s into %s (%d failed)", result.count, resource_type, container_url, len(result.errors)
        )
        return result

    def import_batch(
        self,
        identity: Identity,
        pod_url: str,
        sources: Mapping[str, Iterable[Any]],
        per_type_cap: Optional[int] = None,
    ) -> ImportBatch:
        """Import several resource types; a failing type does not stop the others."""
        batch = ImportBatch()
        for resource_type, entities in sources.items():
            try:
                result = self.import_entities(identity, pod_url, resource_type, entities, per_type_cap)
            except (ConfigurationError, ProtocolError) as e:
                logger.warning("Import of %s failed: %s", resource_type, e)
                batch.errors[resource_type] = {"_type": str(e)}
                continue
            batch.counts[resource_type] = result.count
            batch.total_count += result.count
            if result.errors:
                batch.errors[resource_type] = result.errors
        return batch

    def sync_vehicles(self, identity: Identity, pod_url: str, vehicles: Iterable[Any]) -> VehicleSyncResult:
        """Write each vehicle as ``<pod>/vehicle-<plate|vin|id>.ttl``."""
        result = VehicleSyncResult()
        base = pod_url.rstrip("/")
        for position, vehicle in enumerate(vehicles, start=1):
            key = entity_key(vehicle, position)
            try:
                url = f"{base}/{vehicle_filename(vehicle)}"
                self.orchestrator.write_resource(identity, url, vehicle_document(vehicle, url))
            except _FATAL:
                raise
            except Exception as e:
                result.failed_count += 1
                result.details.append({"vehicle_id": key, "status": "failed", "message": str(e)})
                logger.warning("Vehicle %s not synced: %s", key, e)
                self._record("vehicles", False)
                continue
            result.synced_count += 1
            result.details.append({"vehicle_id": key, "status": "success", "message": "Synced successfully"})
            self._record("vehicles", True)

        logger.info(
            "Vehicle sync to %s: %d synced, %d failed", pod_url, result.synced_count, result.failed_count
        )
        return result
