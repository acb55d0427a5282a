from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Union

FieldValue = Union[int, float]


@dataclass(frozen=True)
class MetricPoint:
    """One time-series sample produced by the point mapper.

    Fields:
        measurement: Measurement name (``nsx_cluster``, ``nsx_alarm``, ...).
        tags:        Indexed string dimensions; keys are unique.
        fields:      Numeric values; keys are unique.
        timestamp:   The collection cycle's shared "now" (UTC).
    """

    measurement: str
    tags: Mapping[str, str]
    fields: Mapping[str, FieldValue]
    timestamp: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
