"""
Observability components for solidpod.

Provides Prometheus metrics; logging uses the standard ``logging`` module
with one logger per module.
"""

from .metrics import SolidMetrics

__all__ = [
    "SolidMetrics",
]
