"""
Entity import and sync for solidpod.
"""

from .projection import PROJECTIONS, Projection, serialize_entity, vehicle_document
from .importer import ImportBatch, ImportEngine, ImportResult, VehicleSyncResult

__all__ = [
    "PROJECTIONS",
    "Projection",
    "serialize_entity",
    "vehicle_document",
    "ImportBatch",
    "ImportEngine",
    "ImportResult",
    "VehicleSyncResult",
]
