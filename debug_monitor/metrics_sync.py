"""Latest-wins metrics view fed by polling and pushed snapshots.

Two producers write the current MetricsSnapshot: a fixed-interval poll
task running while the session is enabled, and metrics events pushed by
the engine. Whichever payload arrives last replaces the snapshot as a
whole. The snapshot's own last_update is not compared, so an engine
delivering events out of order can overwrite fresher data.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from debug_monitor.engine import EngineClient
from debug_monitor.models import MetricsSnapshot
from debug_monitor.session import SessionState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.5


class MetricsSynchronizer:
    """Owns the single current MetricsSnapshot and the poll task."""

    def __init__(
        self,
        client: EngineClient,
        session: SessionState,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: Engine binding used for polls and counter resets
            session: Session whose generation guards every write
            poll_interval: Seconds between polls while enabled
        """
        if poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {poll_interval}")

        self._client = client
        self._session = session
        self.poll_interval = poll_interval
        self.snapshot: MetricsSnapshot | None = None
        self.poll_task: asyncio.Task | None = None
        self.poll_count = 0
        self.poll_errors = 0

    @property
    def is_polling(self) -> bool:
        return self.poll_task is not None and not self.poll_task.done()

    def apply(self, snapshot: MetricsSnapshot, generation: int, origin: str = "push") -> bool:
        """Replace the current snapshot if `generation` is still the live session.

        Returns:
            True if the snapshot was applied
        """
        if not self._session.is_current(generation):
            logger.debug(f"Dropping {origin} metrics from an ended session")
            return False

        self.snapshot = snapshot
        return True

    async def poll_once(self, generation: int | None = None) -> bool:
        """Fetch one snapshot and apply it unless the session ended meanwhile.

        Args:
            generation: Session generation the poll belongs to. Defaults to
                the current one

        Returns:
            True if a fresh snapshot was applied
        """
        if generation is None:
            generation = self._session.generation
        if not self._session.is_current(generation):
            return False

        try:
            snapshot = await self._client.get_debug_metrics()
        except Exception as e:
            self.poll_errors += 1
            logger.error(f"Failed to fetch metrics: {e}")
            return False

        self.poll_count += 1
        return self.apply(snapshot, generation, origin="polled")

    def start_polling(self, generation: int) -> asyncio.Task:
        """Start the poll task for the session `generation`.

        The first tick fires one interval after start; hydration covers the
        initial fetch.
        """
        task = self.poll_task
        if task is not None and not task.done():
            logger.warning("Metrics polling is already running")
            return task

        self.poll_task = asyncio.create_task(
            self._poll_loop(generation), name=f"metrics-poll-{generation}"
        )
        logger.info(f"Metrics polling started every {self.poll_interval * 1000:.0f} ms")
        return self.poll_task

    async def stop_polling(self) -> None:
        """Cancel the poll task and wait for it. Safe when not polling."""
        task, self.poll_task = self.poll_task, None
        if task is None:
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Metrics polling stopped")

    async def reset_counters(self) -> bool:
        """Zero the engine's sample counters, then poll immediately.

        Returns:
            True if the reset succeeded and the fresh snapshot was applied
        """
        try:
            await self._client.reset_debug_counters()
        except Exception as e:
            logger.error(f"Failed to reset counters: {e}")
            return False

        if not self._session.active:
            logger.info("Debug counters reset, metrics resync skipped while disabled")
            return False

        logger.info("Debug counters reset, resynchronizing metrics")
        return await self.poll_once()

    def clear(self) -> None:
        self.snapshot = None

    async def _poll_loop(self, generation: int) -> None:
        """Background task polling metrics until the session ends."""
        try:
            while self._session.is_current(generation):
                await asyncio.sleep(self.poll_interval)
                if not self._session.is_current(generation):
                    break
                await self.poll_once(generation)

        except asyncio.CancelledError:
            logger.debug("Metrics poll loop cancelled")
            raise
