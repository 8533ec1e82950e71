"""Keep the BlueZ adapter powered and discovering."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SEC = 30.0


class DiscoverySupervisor:
    """Periodically re-asserts that the radio is on and scanning.

    ``adapter`` needs ``is_powered``, ``set_powered``, ``is_discovering``,
    ``start_discovery`` and ``set_discovery_filter`` coroutines (see
    ``ble.bluez.BluezAdapter``). Failures are logged and retried on the next
    interval; there is no backoff since re-asserting the state is idempotent.
    """

    def __init__(
        self,
        adapter: Any,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
        discovery_filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.adapter = adapter
        self.interval_sec = interval_sec
        self.discovery_filter = discovery_filter or {}

        self._check_count = 0
        self._failure_count = 0
        self._on_error: Optional[Callable[[Exception], None]] = None

    def set_error_callback(self, callback: Callable[[Exception], None]) -> None:
        """Set callback for failed health checks."""
        self._on_error = callback

    async def ensure_discovering(self) -> bool:
        """Power the adapter and start discovery if needed.

        Returns True if discovery had to be (re)started.
        """
        if not await self.adapter.is_powered():
            logger.info("Adapter is powered off, powering on")
            await self.adapter.set_powered(True)

        if await self.adapter.is_discovering():
            return False

        if self.discovery_filter:
            await self.adapter.set_discovery_filter(self.discovery_filter)
        await self.adapter.start_discovery()
        logger.info("Started discovery")
        return True

    async def check(self) -> None:
        """Run one health check, logging instead of raising."""
        self._check_count += 1
        try:
            await self.ensure_discovering()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failure_count += 1
            logger.error(f"Failed to ensure adapter is discovering: {e}")
            if self._on_error:
                self._on_error(e)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Check every ``interval_sec`` until ``stop_event`` is set."""
        while not stop_event.is_set():
            await self.check()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_sec)
            except asyncio.TimeoutError:
                pass

    def get_status(self) -> dict:
        return {
            "checks": self._check_count,
            "failures": self._failure_count,
        }
