"""Event taps on the engine's pushed debug events.

SubscriptionManager opens the metrics, log and file-saved taps once per
enabled session and hands back a DisposerSet closing all three. Each
handler captures the session generation it was opened under and checks
it before writing, so an event racing with teardown is dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from debug_monitor.engine import (
    FILE_SAVED_EVENT,
    LOG_EVENT,
    METRICS_EVENT,
    EngineClient,
    EventHandler,
)
from debug_monitor.file_registry import FileRegistry
from debug_monitor.log_buffer import LogRingBuffer
from debug_monitor.metrics_sync import MetricsSynchronizer
from debug_monitor.models import ArtifactRecord, LogEntry, MetricsSnapshot
from debug_monitor.session import DisposerSet, SessionState

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Opens and closes the three pushed-event taps of a session."""

    def __init__(
        self,
        client: EngineClient,
        session: SessionState,
        metrics: MetricsSynchronizer,
        logs: LogRingBuffer,
        files: FileRegistry,
    ) -> None:
        self._client = client
        self._session = session
        self._metrics = metrics
        self._logs = logs
        self._files = files
        self._disposers: DisposerSet | None = None
        self.dropped_events = 0
        self.invalid_events = 0

    @property
    def active(self) -> bool:
        return self._disposers is not None

    async def activate(self) -> DisposerSet:
        """Open the taps for the current session.

        If opening a tap fails, the taps already opened are closed before
        the error propagates.

        Returns:
            Composite disposer closing every tap

        Raises:
            RuntimeError: If no session is active
        """
        if self._disposers is not None:
            logger.warning("Debug event subscriptions are already active")
            return self._disposers
        if not self._session.active:
            raise RuntimeError("Cannot subscribe to debug events without an active session")

        generation = self._session.generation
        disposers = DisposerSet()
        self._disposers = disposers

        def apply_metrics(snapshot: MetricsSnapshot) -> None:
            self._metrics.apply(snapshot, generation)

        taps: list[tuple[str, type[BaseModel], Callable[[Any], None]]] = [
            (METRICS_EVENT, MetricsSnapshot, apply_metrics),
            (LOG_EVENT, LogEntry, self._logs.append),
            (FILE_SAVED_EVENT, ArtifactRecord, self._files.on_saved),
        ]

        try:
            for event, model, sink in taps:
                unlisten = await self._client.listen(
                    event, self._guarded(event, model, sink, generation)
                )
                disposers.add(unlisten, name=f"unlisten {event}")
        except Exception:
            self._disposers = None
            await disposers.aclose()
            raise

        if not self._session.is_current(generation):
            # Session ended while the taps were being opened.
            await self.deactivate()
            return disposers

        logger.info(f"Subscribed to {len(disposers)} debug event(s)")
        return disposers

    async def deactivate(self) -> None:
        """Close every tap. Safe to call when nothing is open."""
        disposers, self._disposers = self._disposers, None
        if disposers is None:
            return

        await disposers.aclose()
        logger.info("Unsubscribed from debug events")

    def _guarded(
        self,
        event: str,
        model: type[BaseModel],
        sink: Callable[[Any], None],
        generation: int,
    ) -> EventHandler:
        def handler(payload: dict[str, Any]) -> None:
            if not self._session.is_current(generation):
                self.dropped_events += 1
                logger.debug(f"Dropping {event} event from an ended session")
                return

            try:
                value = model.model_validate(payload)
            except ValidationError as e:
                self.invalid_events += 1
                logger.warning(f"Ignoring malformed {event} payload: {e}")
                return

            sink(value)

        return handler
