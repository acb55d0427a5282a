from core.outcome import CycleReport, DomainOutcome
from core.telemetry import CollectorMetrics
from core.worker import Worker
from core.registry import WorkerRegistry
from core.scheduler import Scheduler

__all__ = [
    "CollectorMetrics",
    "CycleReport",
    "DomainOutcome",
    "Scheduler",
    "Worker",
    "WorkerRegistry",
]
