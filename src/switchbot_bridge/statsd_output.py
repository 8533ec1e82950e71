"""Report SwitchBot readings as statsd gauges."""

from __future__ import annotations

import logging
from typing import List, Tuple

from statsd import StatsClient

from .ble.identity import metric_device_id
from .ble.switchbot_parse import SensorReading
from .errors import ReportError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8125
DEFAULT_PREFIX = "switchbot"


class StrictStatsClient(StatsClient):
    """StatsClient that lets socket send errors reach the caller."""

    def _send(self, data: str) -> None:
        self._sock.sendto(data.encode("ascii"), self._addr)


def temperature_metric_value(celsius: float) -> int:
    """Fixed-point temperature in hundredths of a degree.

    Negative temperatures stay negative rather than wrapping.
    """
    return int(round(celsius * 100))


def reading_gauges(reading: SensorReading) -> List[Tuple[str, int]]:
    """Gauge names and values for one reading, without the client prefix."""
    device = metric_device_id(reading.device_id)
    return [
        (f"temperature.{device}", temperature_metric_value(reading.temperature_celsius)),
        (f"humidity.{device}", reading.humidity_percent),
        (f"battery.{device}", reading.battery_percent),
    ]


class StatsdReporter:
    """Sends three gauges per reading; each send is independent of the others."""

    def __init__(self, client: StatsClient) -> None:
        self.client = client

    @classmethod
    def create(
        cls,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        prefix: str = DEFAULT_PREFIX,
    ) -> StatsdReporter:
        return cls(StrictStatsClient(host=host, port=port, prefix=prefix))

    def report(self, reading: SensorReading) -> None:
        """Send the reading's gauges.

        Raises:
            ReportError: one or more gauges failed; the others were still sent
        """
        failures: List[Tuple[str, Exception]] = []
        for name, value in reading_gauges(reading):
            try:
                self.client.gauge(name, value)
            except OSError as e:
                logger.debug(f"statsd gauge {name} failed: {e}")
                failures.append((name, e))

        if failures:
            raise ReportError(failures)

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
