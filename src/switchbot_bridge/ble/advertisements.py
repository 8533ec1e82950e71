"""Filter BlueZ PropertiesChanged signals down to SwitchBot service data.

BlueZ relays every advertisement it receives during discovery as a
``PropertiesChanged`` signal on the device object. Almost all of that
traffic belongs to other devices, other services or other properties, so
rejection here is the normal case and is never treated as an error.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Mapping, Optional

from dbus_fast import Message, MessageType, Variant

logger = logging.getLogger(__name__)

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
PROPERTIES_CHANGED = "PropertiesChanged"
DEVICE_INTERFACE = "org.bluez.Device1"
SERVICE_DATA = "ServiceData"
METER_SERVICE_UUID = "00000d00-0000-1000-8000-00805f9b34fb"
BLUEZ_NAMESPACE = "/org/bluez"


class FilterOutcome(enum.Enum):
    """Why a message was kept or dropped."""

    NOT_APPLICABLE = "not_applicable"
    NO_SENSOR_PAYLOAD = "no_sensor_payload"
    MATCHED = "matched"


@dataclass(frozen=True)
class ServiceDataEvent:
    """Meter service data observed on a device object."""

    path: str
    payload: bytes


@dataclass(frozen=True)
class FilterResult:
    outcome: FilterOutcome
    event: Optional[ServiceDataEvent] = None


_NOT_APPLICABLE = FilterResult(FilterOutcome.NOT_APPLICABLE)
_NO_SENSOR_PAYLOAD = FilterResult(FilterOutcome.NO_SENSOR_PAYLOAD)


def _unwrap(value: Any) -> Any:
    if isinstance(value, Variant):
        return value.value
    return value


def _is_properties_changed(message: Message) -> bool:
    return (
        message.message_type == MessageType.SIGNAL
        and message.interface == PROPERTIES_INTERFACE
        and message.member == PROPERTIES_CHANGED
    )


def _changed_properties(message: Message) -> Optional[Mapping[str, Any]]:
    """Return the changed properties of a Device1 signal body, if any."""
    body = message.body
    if not body or len(body) < 2:
        return None
    interface, changed = body[0], body[1]
    if interface != DEVICE_INTERFACE or not isinstance(changed, Mapping):
        return None
    return changed


def classify(message: Message, service_uuid: str = METER_SERVICE_UUID) -> FilterResult:
    """Classify a bus message against the meter advertisement predicate."""
    if not _is_properties_changed(message):
        return _NOT_APPLICABLE

    changed = _changed_properties(message)
    if changed is None or not message.path:
        return _NOT_APPLICABLE

    service_data = _unwrap(changed.get(SERVICE_DATA))
    if not isinstance(service_data, Mapping):
        return _NO_SENSOR_PAYLOAD

    payload = _unwrap(service_data.get(service_uuid))
    if payload is None:
        return _NO_SENSOR_PAYLOAD

    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload)
    elif isinstance(payload, list) and all(isinstance(b, int) and 0 <= b <= 0xFF for b in payload):
        payload = bytes(payload)
    else:
        logger.debug(f"Service data for {message.path} is not a byte array: {payload!r}")
        return _NO_SENSOR_PAYLOAD

    return FilterResult(FilterOutcome.MATCHED, ServiceDataEvent(message.path, payload))


def match_service_data(
    message: Message, service_uuid: str = METER_SERVICE_UUID
) -> Optional[ServiceDataEvent]:
    """Return the meter service data carried by ``message`` or None."""
    return classify(message, service_uuid).event


async def filter_service_data(
    messages: AsyncIterable[Message], service_uuid: str = METER_SERVICE_UUID
) -> AsyncIterator[ServiceDataEvent]:
    """Yield meter service data events from a stream of bus messages, in order."""
    async for message in messages:
        event = match_service_data(message, service_uuid)
        if event is not None:
            yield event


def match_rule(namespace: str = BLUEZ_NAMESPACE) -> str:
    """D-Bus match rule selecting PropertiesChanged signals under ``namespace``."""
    return (
        f"type='signal',interface='{PROPERTIES_INTERFACE}',"
        f"member='{PROPERTIES_CHANGED}',path_namespace='{namespace}'"
    )
