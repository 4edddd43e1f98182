"""Prometheus instruments describing scans and reclamation."""

from __future__ import annotations

__all__ = ("ScanMetrics",)

from collections.abc import Iterable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from k8sdeletioninspector.reclaimer import ReclaimResult

PREFIX = "k8s_deletion_inspector"


class ScanMetrics:
    """The inspector's metrics, registered in their own
    `prometheus_client.CollectorRegistry`.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.namespace_count = Gauge(
            f"{PREFIX}_namespace_count",
            "Number of namespaces",
            registry=self.registry,
        )
        self.scan_duration = Histogram(
            f"{PREFIX}_scan_duration_seconds",
            "Duration of the scan in seconds",
            registry=self.registry,
        )
        self.objects_scanned = Counter(
            f"{PREFIX}_total_objects_scanned",
            "Total number of objects scanned",
            registry=self.registry,
        )
        self.stuck_objects = Gauge(
            f"{PREFIX}_stuck_resources_total",
            "Number of stuck objects",
            registry=self.registry,
        )
        self.force_deletions = Counter(
            f"{PREFIX}_force_deletions",
            "Forced deletions of stuck objects by outcome",
            ["outcome"],
            registry=self.registry,
        )

    def set_namespace_count(self, count: int) -> None:
        self.namespace_count.set(count)

    def set_stuck_count(self, count: int) -> None:
        self.stuck_objects.set(count)

    def record_scan(self, duration: float, objects: int) -> None:
        self.scan_duration.observe(duration)
        self.objects_scanned.inc(objects)

    def record_reclaims(self, results: Iterable[ReclaimResult]) -> None:
        for result in results:
            self.force_deletions.labels(outcome=result.outcome.value).inc()

    def render(self) -> bytes:
        """Return the metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
