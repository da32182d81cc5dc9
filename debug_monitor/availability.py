"""One-shot probe deciding whether the debug subsystem exists at all."""

from __future__ import annotations

import logging

from debug_monitor.engine import EngineClient

logger = logging.getLogger(__name__)


class AvailabilityGate:
    """Caches whether the engine exposes its debug subsystem.

    A missing subsystem (release build, engine without debug commands) is a
    normal outcome, so probe() never raises: any failure reads as
    unavailable and the panel renders nothing.
    """

    def __init__(self, client: EngineClient | None) -> None:
        self._client = client
        self._available: bool | None = None

    @property
    def available(self) -> bool:
        return bool(self._available)

    @property
    def probed(self) -> bool:
        return self._available is not None

    async def probe(self) -> bool:
        """Ask the engine once; later calls return the cached answer."""
        if self._available is not None:
            return self._available

        if self._client is None:
            logger.info("No capture engine attached, debug panel disabled")
            self._available = False
            return False

        try:
            self._available = bool(await self._client.is_debug_available())
        except Exception as e:
            logger.info(f"Debug subsystem unavailable: {e}")
            self._available = False

        logger.info(f"Debug subsystem available: {self._available}")
        return self._available
