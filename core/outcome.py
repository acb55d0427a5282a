from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from models.point import MetricPoint


@dataclass(frozen=True)
class DomainOutcome:
    """Result of one fetch step: its points on success, its error otherwise.

    ``subject`` names the item inside a fan-out (node, interface, router,
    LB service) and is empty for whole-domain steps.
    """

    domain: str
    points: tuple[MetricPoint, ...] = ()
    error: str | None = None
    subject: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, domain: str, points=(), subject: str = "") -> DomainOutcome:
        return cls(domain=domain, points=tuple(points), subject=subject)

    @classmethod
    def failure(cls, domain: str, error: BaseException | str, subject: str = "") -> DomainOutcome:
        return cls(domain=domain, error=str(error), subject=subject)


@dataclass
class CycleReport:
    """Everything one Worker cycle produced, in fetch order.

    Drives both the single write batch and the self-monitoring counters.
    """

    site: str
    started_at: datetime
    slow_tier: bool = False
    outcomes: list[DomainOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0
    written: int = 0

    def add(self, outcome: DomainOutcome) -> DomainOutcome:
        self.outcomes.append(outcome)
        return outcome

    @property
    def points(self) -> list[MetricPoint]:
        return [p for o in self.outcomes for p in o.points]

    @property
    def failures(self) -> list[DomainOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def write_failed(self) -> bool:
        return any(o.domain == "write" for o in self.failures)

    def errors_by_domain(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for o in self.failures:
            counts[o.domain] = counts.get(o.domain, 0) + 1
        return counts
