from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from models.point import MetricPoint
from writers.base import PointWriter, WriteError

log = logging.getLogger(__name__)


def to_influx_point(point: MetricPoint) -> Point:
    p = Point(point.measurement)
    for key, value in point.tags.items():
        p.tag(key, value)
    for key, value in point.fields.items():
        p.field(key, value)
    return p.time(point.timestamp, WritePrecision.NS)


class InfluxWriter(PointWriter):
    """Blocking InfluxDB v2 write API, run off the event loop.

    One ``InfluxDBClient`` is shared by every Worker; each ``write_batch``
    is a single HTTP write of the whole batch.
    """

    def __init__(
        self,
        url: str,
        token: str,
        org: str,
        bucket: str,
        client: InfluxDBClient | None = None,
    ) -> None:
        self._client = client if client is not None else InfluxDBClient(url=url, token=token, org=org)
        self._write_api = self._client.write_api(write_options=SYNCHRONOUS)
        self.org = org
        self.bucket = bucket

    async def write_batch(self, points: Sequence[MetricPoint]) -> None:
        try:
            records = [to_influx_point(p) for p in points]
            await asyncio.to_thread(
                self._write_api.write,
                bucket=self.bucket,
                org=self.org,
                record=records,
                write_precision=WritePrecision.NS,
            )
        except Exception as exc:
            raise WriteError(len(points), str(exc)) from exc
        log.debug("%d points written to bucket %s", len(points), self.bucket)

    async def close(self) -> None:
        self._client.close()
