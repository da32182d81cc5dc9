"""Enable/disable lifecycle of the debug session.

ModeController is the only entry point that starts or ends a session.
Enabling switches the engine into debug mode, opens the event taps,
starts metrics polling and hydrates config, metrics and files in
parallel. Disabling marks the session torn down before anything is
awaited, switches the engine back and releases every disposer.
"""

from __future__ import annotations

import asyncio
import logging

from debug_monitor.availability import AvailabilityGate
from debug_monitor.engine import EngineClient
from debug_monitor.file_registry import FileRegistry
from debug_monitor.metrics_sync import MetricsSynchronizer
from debug_monitor.models import CaptureConfig
from debug_monitor.session import SessionState
from debug_monitor.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)


class ModeController:
    """Serialized debug mode toggling with hydration and teardown.

    Only one toggle runs at a time; a call arriving while another is in
    flight is ignored rather than queued. A failed engine toggle leaves
    `enabled` unchanged and is reported through `error`, the only error
    the panel ever shows.
    """

    def __init__(
        self,
        client: EngineClient,
        gate: AvailabilityGate,
        session: SessionState,
        subscriptions: SubscriptionManager,
        metrics: MetricsSynchronizer,
        files: FileRegistry,
    ) -> None:
        self._client = client
        self._gate = gate
        self._session = session
        self._subscriptions = subscriptions
        self._metrics = metrics
        self._files = files

        self.enabled = False
        self.config: CaptureConfig | None = None
        self.error: str | None = None
        self._toggling = False
        self._closed = False

    @property
    def is_loading(self) -> bool:
        return self._toggling

    async def set_enabled(self, target: bool) -> bool:
        """Switch debug mode on or off.

        Args:
            target: Desired debug mode

        Returns:
            True if the transition completed, False if it was ignored or failed
        """
        if self._toggling:
            logger.warning("Debug mode toggle already in progress, ignoring request")
            return False
        if target == self.enabled:
            logger.debug(f"Debug mode already {'enabled' if target else 'disabled'}")
            return False
        if target and (self._closed or not self._gate.available):
            logger.warning("Debug subsystem unavailable, not enabling debug mode")
            return False

        self._toggling = True
        self.error = None
        try:
            if target:
                return await self._enable()
            return await self._disable()
        finally:
            self._toggling = False

    def clear_error(self) -> None:
        self.error = None

    async def shutdown(self) -> None:
        """End any session and refuse further enables."""
        self._closed = True
        if self.enabled and not self._toggling:
            await self.set_enabled(False)
        await self._teardown()

    async def _enable(self) -> bool:
        try:
            await self._client.toggle_debug_mode(True)
        except Exception as e:
            self.error = f"Failed to toggle debug: {e}"
            logger.error(self.error)
            return False

        if self._closed:
            logger.warning("Monitor shut down while enabling debug mode")
            await self._abort_session()
            return False

        self.enabled = True
        generation = self._session.begin()
        self._session.add_disposer(self._subscriptions.deactivate, name="event subscriptions")
        self._session.add_disposer(self._metrics.stop_polling, name="metrics polling")

        try:
            await self._subscriptions.activate()
        except Exception as e:
            logger.error(f"Failed to subscribe to debug events: {e}")
            await self._abort_session()
            self.error = f"Failed to toggle debug: {e}"
            return False

        if not self._session.is_current(generation):
            logger.warning("Debug session ended while subscribing to events")
            await self._abort_session()
            return False

        self._metrics.start_polling(generation)
        logger.info(f"Debug mode enabled (session {generation})")

        await self._hydrate(generation)

        # Only shutdown can end the session while a toggle is in flight.
        if self._closed or not self._session.is_current(generation):
            logger.warning("Debug session ended while hydrating")
            await self._abort_session()
            return False
        return True

    async def _disable(self) -> bool:
        pending = self._session.invalidate()
        try:
            await self._client.toggle_debug_mode(False)
        except Exception as e:
            self.error = f"Failed to toggle debug: {e}"
            logger.error(self.error)
            return False
        else:
            self.enabled = False
            logger.info("Debug mode disabled")
            return True
        finally:
            if pending is not None:
                await pending.aclose()
            await self._teardown()

    async def _abort_session(self) -> None:
        await self._teardown()
        self.enabled = False
        try:
            await self._client.toggle_debug_mode(False)
        except Exception as e:
            logger.error(f"Failed to switch engine back out of debug mode: {e}")

    async def _teardown(self) -> None:
        await self._session.teardown()
        await self._subscriptions.deactivate()
        await self._metrics.stop_polling()

    async def _hydrate(self, generation: int) -> None:
        """Fetch config, metrics and files concurrently; failures are logged only."""
        await asyncio.gather(
            self._fetch_config(generation),
            self._metrics.poll_once(generation),
            self._files.refresh(),
        )

    async def _fetch_config(self, generation: int) -> bool:
        try:
            config = await self._client.get_debug_config()
        except Exception as e:
            logger.error(f"Failed to fetch config: {e}")
            return False

        if not self._session.is_current(generation):
            return False

        self.config = config
        return True
