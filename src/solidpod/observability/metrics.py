"""
Prometheus Metrics Integration.

Provides metrics collection for the solidpod client layer.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter


class SolidMetrics:
    """
    Prometheus metrics collector for solidpod.

    Exposes metrics:
    - solidpod_requests_total{method="...", status="..."}
    - solidpod_dpop_proofs_total{bound="true|false"}
    - solidpod_container_strategy_total{strategy="...", outcome="success|fail"}
    - solidpod_token_resolutions_total{source="oidc|client_credentials|none"}
    - solidpod_import_items_total{resource_type="...", outcome="success|fail"}

    Each collector registers into its own ``CollectorRegistry`` unless one
    is passed in, so several clients (or tests) never collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = "solidpod"):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests_total = Counter(
            f"{prefix}_requests_total",
            "Outbound requests to the Solid server",
            ["method", "status"],
            registry=self.registry,
        )

        self.dpop_proofs_total = Counter(
            f"{prefix}_dpop_proofs_total",
            "DPoP proofs minted",
            ["bound"],
            registry=self.registry,
        )

        self.container_strategy_total = Counter(
            f"{prefix}_container_strategy_total",
            "Container creation attempts per strategy",
            ["strategy", "outcome"],
            registry=self.registry,
        )

        self.token_resolutions_total = Counter(
            f"{prefix}_token_resolutions_total",
            "Access token resolutions by credential path",
            ["source"],
            registry=self.registry,
        )

        self.import_items_total = Counter(
            f"{prefix}_import_items_total",
            "Imported items per resource type",
            ["resource_type", "outcome"],
            registry=self.registry,
        )

    def record_request(self, method: str, status: Optional[int]):
        """Record an outbound request; ``status`` is None on transport failure."""
        self.requests_total.labels(
            method=method.upper(),
            status=str(status) if status is not None else "error",
        ).inc()

    def record_proof(self, bound: bool):
        """Record a minted DPoP proof."""
        self.dpop_proofs_total.labels(bound="true" if bound else "false").inc()

    def record_container_strategy(self, strategy: str, success: bool):
        """Record one container creation attempt."""
        outcome = "success" if success else "fail"
        self.container_strategy_total.labels(strategy=strategy, outcome=outcome).inc()

    def record_token_resolution(self, source: str):
        """Record which credential path produced an access token."""
        self.token_resolutions_total.labels(source=source).inc()

    def record_import_item(self, resource_type: str, success: bool):
        """Record one imported (or failed) item."""
        outcome = "success" if success else "fail"
        self.import_items_total.labels(resource_type=resource_type, outcome=outcome).inc()

    def value(self, name: str, labels: dict[str, str]) -> float:
        """Read a sample value back from the registry (0.0 when unseen)."""
        sample = self.registry.get_sample_value(name, labels)
        return sample if sample is not None else 0.0
