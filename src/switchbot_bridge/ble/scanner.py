"""One-shot bleak scan for nearby SwitchBot meters.

Used by ``switchbot-bridge --scan`` to check which meters are in range and
what they report before running the bridge.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from ..errors import DecodeError
from .advertisements import METER_SERVICE_UUID
from .switchbot_parse import SensorReading

logger = logging.getLogger(__name__)


class MeterScan:
    """Collects the latest reading per meter address during a scan."""

    def __init__(self, service_uuid: str = METER_SERVICE_UUID) -> None:
        self.service_uuid = service_uuid
        self.readings: Dict[str, SensorReading] = {}
        self.rssi: Dict[str, Optional[int]] = {}

    def on_detection(self, device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        """Bleak detection callback."""
        payload = advertisement_data.service_data.get(self.service_uuid)
        if payload is None:
            return

        address = device.address.upper()
        try:
            reading = SensorReading.from_payload(address, payload)
        except DecodeError as e:
            logger.warning(f"Meter {address} sent undecodable service data: {e}")
            return

        self.readings[address] = reading
        self.rssi[address] = advertisement_data.rssi


async def scan_meters(timeout: float = 10.0, adapter: str = "hci0") -> MeterScan:
    """Scan for ``timeout`` seconds and return the meters that were heard."""
    scan = MeterScan()
    logger.info(f"Scanning for SwitchBot meters on {adapter} for {timeout:.0f}s")

    async with BleakScanner(detection_callback=scan.on_detection, adapter=adapter):
        await asyncio.sleep(timeout)

    logger.info(f"Scan finished, {len(scan.readings)} meter(s) found")
    return scan
