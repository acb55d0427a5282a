from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from models.point import MetricPoint


class WriteError(Exception):
    """A batch write was rejected; the whole batch is considered lost."""

    def __init__(self, count: int, reason: str) -> None:
        super().__init__(f"writing {count} points: {reason}")
        self.count = count
        self.reason = reason


class PointWriter(ABC):
    """Sink for one collection cycle's batch of points.

    ``write()`` is called at most once per cycle per manager. An empty batch
    is a successful no-op; otherwise the batch is accepted whole or a single
    ``WriteError`` is raised. Implementations must be safe to share across
    concurrently running Workers.
    """

    async def write(self, points: Sequence[MetricPoint]) -> None:
        if not points:
            return
        try:
            await self.write_batch(points)
        except WriteError:
            raise
        except Exception as exc:
            raise WriteError(len(points), str(exc) or type(exc).__name__) from exc

    @abstractmethod
    async def write_batch(self, points: Sequence[MetricPoint]) -> None:
        """Deliver a non-empty batch.  Subclasses implement this."""

    async def close(self) -> None:
        """Release backend resources.  Default: nothing to release."""
