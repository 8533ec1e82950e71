"""BlueZ D-Bus collaborators: the PropertiesChanged feed and adapter control."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from dbus_fast import BusType, Message, MessageType, Variant
from dbus_fast.aio import MessageBus

from ..errors import AdapterError
from .advertisements import BLUEZ_NAMESPACE, PROPERTIES_INTERFACE, match_rule

logger = logging.getLogger(__name__)

BLUEZ_SERVICE = "org.bluez"
ADAPTER_INTERFACE = "org.bluez.Adapter1"

# Value signatures BlueZ expects for SetDiscoveryFilter entries
DISCOVERY_FILTER_SIGNATURES = {
    "UUIDs": "as",
    "RSSI": "n",
    "Pathloss": "q",
    "Transport": "s",
    "DuplicateData": "b",
    "Discoverable": "b",
    "Pattern": "s",
}


async def connect_system_bus() -> MessageBus:
    """Connect to the system bus."""
    return await MessageBus(bus_type=BusType.SYSTEM).connect()


class PropertiesChangedStream:
    """Async iterator over PropertiesChanged signals under the BlueZ namespace.

    Messages are queued in arrival order by the bus handler and handed out
    one at a time. Iteration blocks until the next message arrives and ends
    once the stream is closed.
    """

    def __init__(self, bus: MessageBus, namespace: str = BLUEZ_NAMESPACE) -> None:
        self.bus = bus
        self.namespace = namespace
        self._queue: asyncio.Queue[Optional[Message]] = asyncio.Queue()
        self._subscribed = False
        self._closed = False

    async def subscribe(self) -> None:
        """Register the match rule and start receiving messages."""
        if self._subscribed:
            return

        reply = await self.bus.call(
            Message(
                destination="org.freedesktop.DBus",
                path="/org/freedesktop/DBus",
                interface="org.freedesktop.DBus",
                member="AddMatch",
                signature="s",
                body=[match_rule(self.namespace)],
            )
        )
        _check_reply("AddMatch", reply)

        self.bus.add_message_handler(self._on_message)
        self._subscribed = True
        logger.info(f"Subscribed to {PROPERTIES_INTERFACE} signals under {self.namespace}")

    def close(self) -> None:
        """Stop delivering messages; pending iteration ends."""
        if self._closed:
            return
        self._closed = True
        if self._subscribed:
            self.bus.remove_message_handler(self._on_message)
        self._queue.put_nowait(None)

    def _on_message(self, message: Message) -> None:
        if not self._closed:
            self._queue.put_nowait(message)

    def __aiter__(self) -> PropertiesChangedStream:
        return self

    async def __anext__(self) -> Message:
        message = await self._queue.get()
        if message is None:
            raise StopAsyncIteration
        return message


class BluezAdapter:
    """Radio control for one BlueZ adapter (``org.bluez.Adapter1``)."""

    def __init__(self, bus: MessageBus, name: str = "hci0") -> None:
        self.bus = bus
        self.name = name
        self.path = f"{BLUEZ_NAMESPACE}/{name}"

    async def is_powered(self) -> bool:
        return bool(await self._get_property("Powered"))

    async def set_powered(self, powered: bool) -> None:
        await self._set_property("Powered", Variant("b", powered))

    async def is_discovering(self) -> bool:
        return bool(await self._get_property("Discovering"))

    async def start_discovery(self) -> None:
        await self._call(ADAPTER_INTERFACE, "StartDiscovery")

    async def set_discovery_filter(self, discovery_filter: Dict[str, Any]) -> None:
        """Apply a BlueZ discovery filter, e.g. ``{"Transport": "le"}``."""
        await self._call(
            ADAPTER_INTERFACE,
            "SetDiscoveryFilter",
            "a{sv}",
            [build_discovery_filter(discovery_filter)],
        )

    async def _get_property(self, name: str) -> Any:
        reply = await self._call(PROPERTIES_INTERFACE, "Get", "ss", [ADAPTER_INTERFACE, name])
        value = reply.body[0]
        return value.value if isinstance(value, Variant) else value

    async def _set_property(self, name: str, value: Variant) -> None:
        await self._call(PROPERTIES_INTERFACE, "Set", "ssv", [ADAPTER_INTERFACE, name, value])

    async def _call(
        self,
        interface: str,
        member: str,
        signature: str = "",
        body: Optional[List[Any]] = None,
    ) -> Message:
        reply = await self.bus.call(
            Message(
                destination=BLUEZ_SERVICE,
                path=self.path,
                interface=interface,
                member=member,
                signature=signature,
                body=body or [],
            )
        )
        return _check_reply(member, reply)


def build_discovery_filter(discovery_filter: Dict[str, Any]) -> Dict[str, Variant]:
    """Wrap discovery filter values in the Variants BlueZ expects."""
    variants: Dict[str, Variant] = {}
    for key, value in discovery_filter.items():
        signature = DISCOVERY_FILTER_SIGNATURES.get(key)
        if signature is None:
            raise ValueError(f"Unknown discovery filter key: {key}")
        variants[key] = Variant(signature, value)
    return variants


def _check_reply(method: str, reply: Optional[Message]) -> Message:
    if reply is None:
        raise AdapterError(method, "org.freedesktop.DBus.Error.NoReply")
    if reply.message_type == MessageType.ERROR:
        detail = str(reply.body[0]) if reply.body else ""
        raise AdapterError(method, reply.error_name or "unknown", detail)
    return reply
