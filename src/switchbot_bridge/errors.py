"""Exception types raised by the SwitchBot bridge."""

from __future__ import annotations

from typing import List, Tuple


class BridgeError(Exception):
    """Base class for all bridge errors."""


class DecodeError(BridgeError):
    """Service data payload could not be decoded."""


class TruncatedPayloadError(DecodeError):
    """Payload is shorter than the meter frame."""

    def __init__(self, length: int, required: int) -> None:
        super().__init__(f"payload too short: {length} bytes, need at least {required}")
        self.length = length
        self.required = required


class InvalidDevicePathError(BridgeError, ValueError):
    """D-Bus object path does not name a BlueZ device."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"invalid device path {path!r}: {reason}")
        self.path = path
        self.reason = reason


class ReportError(BridgeError):
    """One or more gauges of a reading could not be sent."""

    def __init__(self, failures: List[Tuple[str, Exception]]) -> None:
        names = ", ".join(name for name, _ in failures)
        super().__init__(f"failed to send {len(failures)} metric(s): {names}")
        self.failures = failures


class AdapterError(BridgeError):
    """BlueZ adapter call returned a D-Bus error."""

    def __init__(self, method: str, error_name: str, detail: str = "") -> None:
        message = f"{method} failed: {error_name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.method = method
        self.error_name = error_name
        self.detail = detail
