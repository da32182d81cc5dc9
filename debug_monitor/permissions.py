"""Screen recording permission tracking.

Capturing speaker output needs the OS screen recording permission. The
negotiator mirrors its last known state; every failure resolves to
DENIED so the panel can always decide whether to show the settings link.
"""

from __future__ import annotations

import logging

from debug_monitor.engine import EngineClient
from debug_monitor.models import PermissionState

logger = logging.getLogger(__name__)


class PermissionNegotiator:
    """Tri-state permission cache refreshed only by probe() and request()."""

    def __init__(self, client: EngineClient) -> None:
        self._client = client
        self.state = PermissionState.UNKNOWN

    async def probe(self) -> PermissionState:
        """Check the current permission without prompting the user.

        Returns:
            The refreshed permission state
        """
        try:
            granted = await self._client.check_screen_recording_permission()
            self.state = PermissionState.from_granted(bool(granted))
        except Exception as e:
            logger.error(f"Failed to check screen recording permission: {e}")
            self.state = PermissionState.DENIED

        return self.state

    async def request(self) -> PermissionState:
        """Prompt the user for the permission.

        Returns:
            The refreshed permission state
        """
        try:
            granted = await self._client.request_screen_recording_permission()
            self.state = PermissionState.from_granted(bool(granted))
        except Exception as e:
            logger.error(f"Failed to request screen recording permission: {e}")
            self.state = PermissionState.DENIED

        logger.info(f"Screen recording permission: {self.state.value}")
        return self.state

    async def open_settings(self) -> None:
        """Open the OS settings pane. Failures are only logged."""
        try:
            await self._client.open_screen_recording_settings()
        except Exception as e:
            logger.error(f"Failed to open screen recording settings: {e}")
