"""Main bridge module: BlueZ advertisements in, statsd gauges out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, List, Optional, TextIO, Union

from dbus_fast import Message

from .ble.bluez import BluezAdapter, PropertiesChangedStream, connect_system_bus
from .ble.switchbot_parse import SensorReading
from .config import AppConfig
from .discovery import DiscoverySupervisor
from .errors import ReportError
from .logs import NdjsonLogger, NullLogger
from .pipeline import EventPipeline
from .statsd_output import StatsdReporter

logger = logging.getLogger(__name__)


def format_reading(reading: SensorReading) -> str:
    """Human-readable output line for one reading."""
    return (
        f"{reading.device_id} {reading.display_temperature()} "
        f"{reading.humidity_percent} {reading.battery_percent}"
    )


class Bridge:
    """Runs the reading consumer and the discovery supervisor side by side.

    The consumer pulls readings from the pipeline in arrival order and
    reports each one synchronously. The supervisor only touches the
    adapter, so the two tasks share no reading state.
    """

    def __init__(
        self,
        config: AppConfig,
        messages: AsyncIterable[Message],
        adapter: Any,
        reporter: StatsdReporter,
        status_logger: Optional[Union[NdjsonLogger, NullLogger]] = None,
        output: Optional[TextIO] = None,
    ) -> None:
        self.config = config
        self.pipeline = EventPipeline(messages, service_uuid=config.bluez.service_uuid)
        self.supervisor = DiscoverySupervisor(
            adapter,
            interval_sec=config.bluez.discovery_interval_sec,
            discovery_filter=config.bluez.discovery_filter,
        )
        self.reporter = reporter
        self.logger = status_logger or NullLogger()
        self.output = output

        self.report_failures = 0

        self._stop_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

        self.supervisor.set_error_callback(self._on_adapter_error)

    async def run(self) -> None:
        """Run until the message stream ends or ``stop()`` is called."""
        self._stop_event.clear()

        self.logger.status("Bridge starting", {
            "adapter": self.config.bluez.adapter,
            "service_uuid": self.config.bluez.service_uuid,
            "statsd": f"{self.config.statsd.host}:{self.config.statsd.port}",
        })

        consumer = asyncio.create_task(self._consume())
        self._tasks = [
            consumer,
            asyncio.create_task(self.supervisor.run(self._stop_event)),
            asyncio.create_task(self._status_loop()),
        ]

        try:
            await consumer
        except asyncio.CancelledError:
            # stop() cancels the consumer; anything else cancelled run() itself
            if not self._stop_event.is_set():
                await self.stop()
                raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop all tasks."""
        self._stop_event.set()
        if not self._tasks:
            return

        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        self.logger.status("Bridge stopped", self.pipeline.stats.to_dict())

    def handle_reading(self, reading: SensorReading) -> None:
        """Print and report one reading; reporting failures are not fatal."""
        if self.config.logging.print_readings:
            print(format_reading(reading), file=self.output, flush=True)

        try:
            self.reporter.report(reading)
        except ReportError as e:
            self.report_failures += 1
            logger.warning(f"Reporting {reading.device_id} failed: {e}")
            self.logger.error("Report failed", {
                "device_id": reading.device_id,
                "metrics": [name for name, _ in e.failures],
                "error": str(e),
            })

    async def _consume(self) -> None:
        async for reading in self.pipeline.readings():
            logger.debug(f"Reading {reading}")
            self.logger.debug("reading", reading.to_dict())
            self.handle_reading(reading)
        logger.info("Message stream ended")

    async def _status_loop(self) -> None:
        """Periodic status reporting."""
        interval = self.config.logging.status_interval_sec
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            self.logger.status("Bridge status", {
                "pipeline": self.pipeline.stats.to_dict(),
                "discovery": self.supervisor.get_status(),
                "report_failures": self.report_failures,
            })

    def _on_adapter_error(self, error: Exception) -> None:
        self.logger.error("Adapter error", {"error": str(error), "type": type(error).__name__})


def create_status_logger(config: AppConfig) -> Union[NdjsonLogger, NullLogger]:
    if not config.logging.dir:
        return NullLogger()
    return NdjsonLogger(config.logging.dir, config.logging.file_prefix, mode=config.logging.mode)


async def run_bridge(config: AppConfig) -> None:
    """Connect to the system bus and run the bridge forever.

    Failing to connect or subscribe is fatal and propagates to the caller.
    """
    bus = await connect_system_bus()
    stream = PropertiesChangedStream(bus)
    await stream.subscribe()

    adapter = BluezAdapter(bus, config.bluez.adapter)
    reporter = StatsdReporter.create(config.statsd.host, config.statsd.port, config.statsd.prefix)
    status_logger = create_status_logger(config)

    bridge = Bridge(config, stream, adapter, reporter, status_logger=status_logger)
    try:
        await bridge.run()
    finally:
        stream.close()
        reporter.close()
        status_logger.close()
        bus.disconnect()
