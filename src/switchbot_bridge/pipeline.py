"""Turn a stream of bus messages into SwitchBot sensor readings."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import AsyncIterable, AsyncIterator, Optional

from dbus_fast import Message

from .ble.advertisements import METER_SERVICE_UUID, FilterOutcome, classify
from .ble.identity import device_id_from_path
from .ble.switchbot_parse import SensorReading
from .errors import DecodeError, InvalidDevicePathError

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Counters for every message the pipeline has looked at."""

    seen: int = 0
    not_applicable: int = 0
    no_sensor_payload: int = 0
    invalid_path: int = 0
    decode_failed: int = 0
    readings: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class EventPipeline:
    """Pull-style pipeline: filter, identify and decode each message in order.

    Messages that are not meter advertisements are skipped silently. Meter
    advertisements with a malformed object path or payload are logged and
    skipped; they never end the stream.
    """

    def __init__(
        self,
        messages: AsyncIterable[Message],
        service_uuid: str = METER_SERVICE_UUID,
    ) -> None:
        self.messages = messages
        self.service_uuid = service_uuid
        self.stats = PipelineStats()

    async def readings(self) -> AsyncIterator[SensorReading]:
        """Yield one SensorReading per accepted message."""
        async for message in self.messages:
            reading = self.process(message)
            if reading is not None:
                yield reading

    def process(self, message: Message) -> Optional[SensorReading]:
        """Return the reading carried by ``message``, or None if it is dropped."""
        self.stats.seen += 1

        result = classify(message, self.service_uuid)
        if result.outcome is FilterOutcome.NOT_APPLICABLE:
            self.stats.not_applicable += 1
            return None
        if result.outcome is FilterOutcome.NO_SENSOR_PAYLOAD:
            self.stats.no_sensor_payload += 1
            return None

        event = result.event
        try:
            device_id = device_id_from_path(event.path)
        except InvalidDevicePathError as e:
            self.stats.invalid_path += 1
            logger.warning(f"Dropping meter advertisement: {e}")
            return None

        try:
            reading = SensorReading.from_payload(device_id, event.payload)
        except DecodeError as e:
            self.stats.decode_failed += 1
            logger.warning(f"Dropping meter advertisement from {device_id}: {e} "
                           f"(payload={event.payload.hex()})")
            return None

        self.stats.readings += 1
        return reading
