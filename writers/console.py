from __future__ import annotations

from typing import Sequence

from models.point import MetricPoint
from writers.base import PointWriter
from writers.influx import to_influx_point


class ConsoleWriter(PointWriter):
    """Prints each batch as InfluxDB line protocol to stdout (``--dry-run``)."""

    async def write_batch(self, points: Sequence[MetricPoint]) -> None:
        lines = [to_influx_point(p).to_line_protocol() for p in points]
        print("\n".join(line for line in lines if line), flush=True)
