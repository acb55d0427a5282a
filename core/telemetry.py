from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY

from core.outcome import CycleReport


class CollectorMetrics:
    """Self-monitoring instruments shared by every Worker.

    One instance is created by the process and handed to each Worker;
    ``prometheus_client`` metrics are thread- and task-safe, so no extra
    locking is needed. Tests pass a private ``CollectorRegistry``.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY
        self.cycles = Counter(
            "nsx_collector_collect_cycles",
            "Total number of collection cycles completed.",
            ["site"],
            registry=self.registry,
        )
        self.duration = Histogram(
            "nsx_collector_collect_duration_seconds",
            "Duration of each collection cycle.",
            ["site"],
            registry=self.registry,
        )
        self.errors = Counter(
            "nsx_collector_collect_errors",
            "Total number of collection errors.",
            ["site", "component"],
            registry=self.registry,
        )
        self.points_written = Counter(
            "nsx_collector_points_written",
            "Total number of InfluxDB points written.",
            ["site"],
            registry=self.registry,
        )

    def record(self, report: CycleReport) -> None:
        site = report.site
        for domain, count in report.errors_by_domain().items():
            self.errors.labels(site=site, component=domain).inc(count)
        if report.written:
            self.points_written.labels(site=site).inc(report.written)
        self.cycles.labels(site=site).inc()
        self.duration.labels(site=site).observe(report.duration_seconds)
