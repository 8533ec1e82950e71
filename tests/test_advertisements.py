"""Tests for the PropertiesChanged advertisement filter."""

import asyncio

from dbus_fast import MessageType, Variant

from switchbot_bridge.ble.advertisements import (
    METER_SERVICE_UUID,
    FilterOutcome,
    ServiceDataEvent,
    classify,
    filter_service_data,
    match_rule,
    match_service_data,
)

from conftest import DEVICE_PATH, METER_PAYLOAD

OTHER_UUID = "0000fe95-0000-1000-8000-00805f9b34fb"


def test_meter_advertisement_matches(meter_signal):
    result = classify(meter_signal())
    assert result.outcome is FilterOutcome.MATCHED
    assert result.event == ServiceDataEvent(DEVICE_PATH, METER_PAYLOAD)


def test_method_call_is_not_applicable(properties_changed):
    message = properties_changed(
        message_type=MessageType.METHOD_CALL,
        service_data={METER_SERVICE_UUID: METER_PAYLOAD},
    )
    assert classify(message).outcome is FilterOutcome.NOT_APPLICABLE


def test_wrong_signal_interface_is_not_applicable(properties_changed):
    message = properties_changed(
        signal_interface="org.freedesktop.DBus.ObjectManager",
        service_data={METER_SERVICE_UUID: METER_PAYLOAD},
    )
    assert classify(message).outcome is FilterOutcome.NOT_APPLICABLE


def test_wrong_member_is_not_applicable(properties_changed):
    message = properties_changed(
        member="InterfacesAdded",
        service_data={METER_SERVICE_UUID: METER_PAYLOAD},
    )
    assert match_service_data(message) is None
    assert classify(message).outcome is FilterOutcome.NOT_APPLICABLE


def test_adapter_interface_is_not_applicable(properties_changed):
    message = properties_changed(
        path="/org/bluez/hci0",
        interface="org.bluez.Adapter1",
        extra_properties={"Discovering": Variant("b", True)},
    )
    assert classify(message).outcome is FilterOutcome.NOT_APPLICABLE


def test_device_change_without_service_data(properties_changed):
    message = properties_changed()
    assert classify(message).outcome is FilterOutcome.NO_SENSOR_PAYLOAD


def test_service_data_without_meter_uuid_is_dropped(properties_changed):
    message = properties_changed(service_data={OTHER_UUID: b"\x01\x02\x03\x04\x05\x06"})
    assert classify(message).outcome is FilterOutcome.NO_SENSOR_PAYLOAD
    assert match_service_data(message) is None


def test_meter_uuid_among_other_services(properties_changed):
    message = properties_changed(
        service_data={OTHER_UUID: b"\x01", METER_SERVICE_UUID: METER_PAYLOAD},
    )
    assert match_service_data(message) == ServiceDataEvent(DEVICE_PATH, METER_PAYLOAD)


def test_short_payload_still_passes_filter(meter_signal):
    # decoding, not filtering, rejects short payloads
    event = match_service_data(meter_signal(payload=b"\x00\x01"))
    assert event.payload == b"\x00\x01"


def test_custom_service_uuid(properties_changed):
    message = properties_changed(service_data={OTHER_UUID: METER_PAYLOAD})
    assert match_service_data(message, OTHER_UUID).payload == METER_PAYLOAD


def test_unwrapped_body_values(properties_changed):
    message = properties_changed()
    message.body[1]["ServiceData"] = {METER_SERVICE_UUID: list(METER_PAYLOAD)}
    assert match_service_data(message).payload == METER_PAYLOAD


def test_filter_service_data_keeps_order(meter_signal, properties_changed):
    messages = [
        meter_signal(payload=b"\x01" * 6),
        properties_changed(),
        properties_changed(member="InterfacesAdded"),
        meter_signal(payload=b"\x02" * 6, path="/org/bluez/hci0/dev_11_22_33_44_55_66"),
    ]

    async def source():
        for message in messages:
            yield message

    async def collect():
        return [event async for event in filter_service_data(source())]

    events = asyncio.run(collect())
    assert [event.payload for event in events] == [b"\x01" * 6, b"\x02" * 6]
    assert events[1].path == "/org/bluez/hci0/dev_11_22_33_44_55_66"


def test_match_rule():
    assert match_rule() == (
        "type='signal',interface='org.freedesktop.DBus.Properties',"
        "member='PropertiesChanged',path_namespace='/org/bluez'"
    )


def test_non_byte_service_data_is_dropped(properties_changed):
    message = properties_changed()
    message.body[1]["ServiceData"] = Variant("a{sv}", {METER_SERVICE_UUID: Variant("u", 8)})
    assert classify(message).outcome is FilterOutcome.NO_SENSOR_PAYLOAD


def test_list_with_out_of_range_values_is_dropped(properties_changed):
    message = properties_changed()
    message.body[1]["ServiceData"] = {METER_SERVICE_UUID: [0, 0, 300, 1, 2, 3]}
    assert match_service_data(message) is None
