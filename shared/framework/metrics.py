"""Prometheus metrics collection for registry sync services."""

from typing import Optional

import structlog
from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """Centralized metrics collection for registry sync services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name.replace("-", "_")
        self.registry = registry or CollectorRegistry()
        self._init_metrics()

    def _init_metrics(self):
        prefix = self.service_name

        self.info = Info(
            f"{prefix}_info",
            f"Information about {prefix}",
            registry=self.registry
        )

        # Sync pass metrics
        self.sync_passes = Counter(
            f"{prefix}_sync_passes_total",
            "Total number of sync passes by outcome",
            ["outcome"],
            registry=self.registry
        )

        self.sync_duration = Histogram(
            f"{prefix}_sync_duration_seconds",
            "Sync pass duration in seconds",
            buckets=[1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0, 3600.0],
            registry=self.registry
        )

        self.last_sync_timestamp = Gauge(
            f"{prefix}_last_sync_timestamp_seconds",
            "Unix time at which the last sync pass finished",
            registry=self.registry
        )

        # Entity metrics
        self.entities_processed = Counter(
            f"{prefix}_entities_processed_total",
            "Organizations and services processed, by entity and status",
            ["entity", "status"],
            registry=self.registry
        )

        self.compile_failures = Counter(
            f"{prefix}_schema_compile_failures_total",
            "Schema files that failed to compile",
            registry=self.registry
        )

        self.registry_descriptors = Gauge(
            f"{prefix}_registry_descriptors",
            "Compiled descriptors currently held in the schema registry",
            registry=self.registry
        )

        # Error metrics
        self.errors_total = Counter(
            f"{prefix}_errors_total",
            f"Total number of errors in {prefix}",
            ["error_type", "component"],
            registry=self.registry
        )

        self.health_status = Gauge(
            f"{prefix}_health_status",
            f"Health status of {prefix} (1=healthy, 0=unhealthy)",
            registry=self.registry
        )

    def record_sync_pass(self, outcome: str, duration: float, finished_at: float):
        """Record a completed sync pass."""
        self.sync_passes.labels(outcome=outcome).inc()
        self.sync_duration.observe(duration)
        self.last_sync_timestamp.set(finished_at)

    def record_entity(self, entity: str, status: str):
        """Record an organization or service outcome."""
        self.entities_processed.labels(entity=entity, status=status).inc()

    def record_compile_failure(self):
        self.compile_failures.inc()

    def set_registry_size(self, descriptors: int):
        self.registry_descriptors.set(descriptors)

    def record_error(self, error_type: str, component: str):
        """Record an error metric."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def set_health_status(self, healthy: bool):
        """Set the health status metric."""
        self.health_status.set(1 if healthy else 0)

    def update_service_info(self, version: str, environment: str, **kwargs):
        """Update service information."""
        self.info.info({"version": version, "environment": environment, **kwargs})

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics."""
        return CONTENT_TYPE_LATEST
