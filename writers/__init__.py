from writers.base import PointWriter, WriteError
from writers.console import ConsoleWriter
from writers.influx import InfluxWriter

__all__ = ["PointWriter", "WriteError", "ConsoleWriter", "InfluxWriter"]
