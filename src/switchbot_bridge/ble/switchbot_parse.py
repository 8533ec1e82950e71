"""Parser for SwitchBot Meter advertisement service data.

The meter broadcasts its measurements as service data under the
16-bit UUID 0x0D00 (``00000d00-0000-1000-8000-00805f9b34fb``).

Byte structure (only bytes 0-5 are read):
- bytes[0]: device type
- bytes[1]: status flags
- bytes[2]: bit 7 unused, bits 0-6 battery percent
- bytes[3]: temperature fraction (tenths of a degree)
- bytes[4]: bit 7 sign (1 = above zero), bits 0-6 whole degrees Celsius
- bytes[5]: bit 7 display unit (1 = Fahrenheit), bits 0-6 humidity percent

No range checks are applied beyond the 7-bit masks, so humidity and
battery can read up to 127 on an uncalibrated device.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import TruncatedPayloadError

METER_FRAME_LENGTH = 6

_LOW7 = 0b0111_1111
_HIGH_BIT = 0b1000_0000


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9.0 / 5.0 + 32.0


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32.0) * 5.0 / 9.0


@dataclass(frozen=True)
class MeterData:
    """Measurements carried by one meter payload."""

    temperature_celsius: float
    unit_is_fahrenheit: bool
    humidity_percent: int
    battery_percent: int


def decode_temperature(payload: bytes) -> float:
    """Decode the signed temperature from bytes 3 and 4.

    The magnitude is ``whole * 10 + tenths`` decimal-degree units and the
    sign applies to the whole magnitude.
    """
    tenths = payload[3]
    sign = 1 if payload[4] & _HIGH_BIT else -1
    whole = payload[4] & _LOW7
    return sign * (whole * 10 + tenths) / 10.0


def decode_temperature_unit(payload: bytes) -> bool:
    return bool(payload[5] & _HIGH_BIT)


def decode_humidity(payload: bytes) -> int:
    return payload[5] & _LOW7


def decode_battery(payload: bytes) -> int:
    return payload[2] & _LOW7


def decode_meter(payload: bytes) -> MeterData:
    """Decode a SwitchBot Meter service data payload.

    Args:
        payload: Raw service data bytes for the meter UUID

    Returns:
        MeterData with temperature, unit flag, humidity and battery

    Raises:
        TruncatedPayloadError: payload is shorter than 6 bytes
    """
    payload = bytes(payload)
    if len(payload) < METER_FRAME_LENGTH:
        raise TruncatedPayloadError(len(payload), METER_FRAME_LENGTH)

    return MeterData(
        temperature_celsius=decode_temperature(payload),
        unit_is_fahrenheit=decode_temperature_unit(payload),
        humidity_percent=decode_humidity(payload),
        battery_percent=decode_battery(payload),
    )


@dataclass(frozen=True)
class SensorReading:
    """A decoded meter reading for one advertisement."""

    device_id: str
    temperature_celsius: float
    unit_is_fahrenheit: bool
    humidity_percent: int
    battery_percent: int

    @classmethod
    def from_payload(cls, device_id: str, payload: bytes) -> SensorReading:
        """Build a reading from a device id and raw service data."""
        data = decode_meter(payload)
        return cls(
            device_id=device_id,
            temperature_celsius=data.temperature_celsius,
            unit_is_fahrenheit=data.unit_is_fahrenheit,
            humidity_percent=data.humidity_percent,
            battery_percent=data.battery_percent,
        )

    @property
    def temperature_fahrenheit(self) -> float:
        return celsius_to_fahrenheit(self.temperature_celsius)

    def display_temperature(self) -> float:
        """Temperature in the unit the meter is set to display."""
        if self.unit_is_fahrenheit:
            return round(self.temperature_fahrenheit, 1)
        return self.temperature_celsius

    def to_dict(self) -> dict:
        """Convert reading to dictionary for logging."""
        return {
            "device_id": self.device_id,
            "temperature_c": self.temperature_celsius,
            "fahrenheit": self.unit_is_fahrenheit,
            "humidity": self.humidity_percent,
            "battery": self.battery_percent,
        }
