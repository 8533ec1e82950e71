"""Device identifiers derived from BlueZ object paths."""

from __future__ import annotations

import string

from ..errors import InvalidDevicePathError

DEVICE_PREFIX = "dev"
ADDRESS_BYTES = 6

_HEX = set(string.hexdigits)


def device_id_from_path(path: str) -> str:
    """Return the upper-case MAC address encoded in a device object path.

    ``/org/bluez/hci0/dev_F0_73_23_10_C7_3E`` becomes ``F0:73:23:10:C7:3E``.

    Raises:
        InvalidDevicePathError: the last path segment is not ``dev_`` followed
            by six underscore separated hex bytes
    """
    if not path:
        raise InvalidDevicePathError(path, "empty path")

    segment = path.rstrip("/").split("/")[-1]
    tokens = segment.split("_")

    if tokens[0] != DEVICE_PREFIX:
        raise InvalidDevicePathError(path, f"segment {segment!r} has no '{DEVICE_PREFIX}_' prefix")

    octets = tokens[1:]
    if len(octets) != ADDRESS_BYTES:
        raise InvalidDevicePathError(
            path, f"expected {ADDRESS_BYTES} address bytes, got {len(octets)}"
        )

    for octet in octets:
        if len(octet) != 2 or not set(octet) <= _HEX:
            raise InvalidDevicePathError(path, f"{octet!r} is not a hex byte")

    return ":".join(octets).upper()


def metric_device_id(device_id: str) -> str:
    """Metric-name safe form of a device id: no separators, lower-case."""
    return device_id.replace(":", "").lower()
