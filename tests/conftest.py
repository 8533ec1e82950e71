"""Shared builders for BlueZ bus messages."""

from typing import Optional

import pytest
from dbus_fast import Message, MessageType, Variant

from switchbot_bridge.ble.advertisements import (
    DEVICE_INTERFACE,
    METER_SERVICE_UUID,
    PROPERTIES_CHANGED,
    PROPERTIES_INTERFACE,
)

DEVICE_PATH = "/org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF"
METER_PAYLOAD = bytes([0x00, 0x00, 0x32, 0x01, 0x85, 0x28])


def build_properties_changed(
    path: str = DEVICE_PATH,
    service_data: Optional[dict] = None,
    interface: str = DEVICE_INTERFACE,
    message_type: MessageType = MessageType.SIGNAL,
    member: str = PROPERTIES_CHANGED,
    signal_interface: str = PROPERTIES_INTERFACE,
    extra_properties: Optional[dict] = None,
) -> Message:
    changed = {"RSSI": Variant("n", -67)}
    if service_data is not None:
        changed["ServiceData"] = Variant(
            "a{sv}", {uuid: Variant("ay", bytes(data)) for uuid, data in service_data.items()}
        )
    if extra_properties:
        changed.update(extra_properties)

    return Message(
        message_type=message_type,
        path=path,
        interface=signal_interface,
        member=member,
        signature="sa{sv}as",
        body=[interface, changed, []],
    )


@pytest.fixture
def properties_changed():
    """Factory for PropertiesChanged messages."""
    return build_properties_changed


@pytest.fixture
def meter_signal():
    """Factory for a meter advertisement on a given path with a given payload."""

    def _build(payload: bytes = METER_PAYLOAD, path: str = DEVICE_PATH) -> Message:
        return build_properties_changed(path=path, service_data={METER_SERVICE_UUID: payload})

    return _build
