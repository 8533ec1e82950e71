"""Tests for the BlueZ D-Bus collaborators."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from dbus_fast import Message, MessageType, Variant

from switchbot_bridge.ble.bluez import (
    BluezAdapter,
    PropertiesChangedStream,
    build_discovery_filter,
)
from switchbot_bridge.errors import AdapterError


def method_return(signature="", body=None):
    return Message(
        message_type=MessageType.METHOD_RETURN,
        reply_serial=1,
        signature=signature,
        body=body or [],
    )


def error_reply(name="org.bluez.Error.NotReady", text="Resource Not Ready"):
    return Message(
        message_type=MessageType.ERROR,
        error_name=name,
        reply_serial=1,
        signature="s",
        body=[text],
    )


def make_bus(reply):
    bus = Mock()
    bus.call = AsyncMock(return_value=reply)
    return bus


class TestBluezAdapter:
    def test_is_powered_reads_property(self):
        bus = make_bus(method_return("v", [Variant("b", True)]))
        adapter = BluezAdapter(bus, "hci1")

        assert asyncio.run(adapter.is_powered()) is True

        sent = bus.call.await_args.args[0]
        assert sent.destination == "org.bluez"
        assert sent.path == "/org/bluez/hci1"
        assert sent.interface == "org.freedesktop.DBus.Properties"
        assert sent.member == "Get"
        assert sent.body == ["org.bluez.Adapter1", "Powered"]

    def test_is_discovering(self):
        bus = make_bus(method_return("v", [Variant("b", False)]))
        assert asyncio.run(BluezAdapter(bus).is_discovering()) is False
        assert bus.call.await_args.args[0].body == ["org.bluez.Adapter1", "Discovering"]

    def test_set_powered(self):
        bus = make_bus(method_return())
        asyncio.run(BluezAdapter(bus).set_powered(True))

        sent = bus.call.await_args.args[0]
        assert sent.member == "Set"
        assert sent.body[:2] == ["org.bluez.Adapter1", "Powered"]
        assert sent.body[2] == Variant("b", True)

    def test_start_discovery(self):
        bus = make_bus(method_return())
        asyncio.run(BluezAdapter(bus).start_discovery())

        sent = bus.call.await_args.args[0]
        assert sent.interface == "org.bluez.Adapter1"
        assert sent.member == "StartDiscovery"

    def test_set_discovery_filter(self):
        bus = make_bus(method_return())
        asyncio.run(BluezAdapter(bus).set_discovery_filter({"Transport": "le", "DuplicateData": True}))

        sent = bus.call.await_args.args[0]
        assert sent.member == "SetDiscoveryFilter"
        assert sent.body == [{"Transport": Variant("s", "le"), "DuplicateData": Variant("b", True)}]

    def test_error_reply_raises(self):
        bus = make_bus(error_reply())
        with pytest.raises(AdapterError) as excinfo:
            asyncio.run(BluezAdapter(bus).start_discovery())

        assert excinfo.value.method == "StartDiscovery"
        assert excinfo.value.error_name == "org.bluez.Error.NotReady"
        assert "Resource Not Ready" in str(excinfo.value)


def test_unknown_discovery_filter_key():
    with pytest.raises(ValueError):
        build_discovery_filter({"Colour": "blue"})


class TestPropertiesChangedStream:
    def test_subscribe_and_iterate(self, meter_signal, properties_changed):
        bus = make_bus(method_return())
        handlers = []
        bus.add_message_handler.side_effect = handlers.append
        first, second = meter_signal(), properties_changed()

        async def scenario():
            stream = PropertiesChangedStream(bus)
            await stream.subscribe()
            handlers[0](first)
            handlers[0](second)
            stream.close()
            return [message async for message in stream]

        received = asyncio.run(scenario())

        assert received == [first, second]
        add_match = bus.call.await_args.args[0]
        assert add_match.member == "AddMatch"
        assert "path_namespace='/org/bluez'" in add_match.body[0]
        bus.remove_message_handler.assert_called_once()

    def test_subscribe_failure_propagates(self):
        bus = make_bus(error_reply("org.freedesktop.DBus.Error.AccessDenied", "denied"))

        async def scenario():
            await PropertiesChangedStream(bus).subscribe()

        with pytest.raises(AdapterError):
            asyncio.run(scenario())
        bus.add_message_handler.assert_not_called()

    def test_messages_after_close_are_ignored(self, meter_signal):
        bus = make_bus(method_return())
        handlers = []
        bus.add_message_handler.side_effect = handlers.append

        async def scenario():
            stream = PropertiesChangedStream(bus)
            await stream.subscribe()
            stream.close()
            handlers[0](meter_signal())
            return [message async for message in stream]

        assert asyncio.run(scenario()) == []
