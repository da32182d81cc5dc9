"""Debug monitor coordinator.

DebugCoordinator wires the availability gate, mode controller, event
subscriptions, metrics synchronizer, log buffer, file registry and
permission negotiator around one engine binding. The panel only reads
PanelState snapshots and calls the public operations below; no other code
mutates the components' state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict

from debug_monitor.availability import AvailabilityGate
from debug_monitor.config import Settings, get_config
from debug_monitor.engine import EngineClient
from debug_monitor.file_registry import FileRegistry
from debug_monitor.log_buffer import LogRingBuffer
from debug_monitor.metrics_sync import MetricsSynchronizer
from debug_monitor.mode_controller import ModeController
from debug_monitor.models import (
    ArtifactRecord,
    CaptureConfig,
    LogEntry,
    MetricsSnapshot,
    PermissionState,
    SourceView,
)
from debug_monitor.permissions import PermissionNegotiator
from debug_monitor.session import SessionState
from debug_monitor.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

PathOpener = Callable[[str], Awaitable[None]]


class PanelState(BaseModel):
    """Everything the debug panel renders, captured at one instant."""

    model_config = ConfigDict(frozen=True)

    is_available: bool
    is_enabled: bool
    is_loading: bool
    error: str | None
    config: CaptureConfig | None
    metrics: MetricsSnapshot | None
    mic: SourceView | None
    speaker: SourceView | None
    files: tuple[ArtifactRecord, ...]
    logs: tuple[LogEntry, ...]
    screen_recording_permission: PermissionState


class DebugCoordinator:
    """Composite owner of the debug monitor state.

    The coordinator is built once per UI process with an injected engine
    binding, and optionally an opener used to reveal files in the OS shell.
    """

    def __init__(
        self,
        client: EngineClient,
        settings: Settings | None = None,
        opener: PathOpener | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Engine binding
            settings: Application configuration. If None, loads from get_config()
            opener: Coroutine opening a path with the OS shell
        """
        self.settings = settings or get_config()
        self._client = client
        self._opener = opener

        self.session = SessionState()
        self.gate = AvailabilityGate(client)
        self.permissions = PermissionNegotiator(client)
        self.logs = LogRingBuffer(self.settings.logs.capacity)
        self.files = FileRegistry(client, self.session)
        self.metrics = MetricsSynchronizer(
            client, self.session, self.settings.polling.metrics_interval_seconds
        )
        self.subscriptions = SubscriptionManager(
            client, self.session, self.metrics, self.logs, self.files
        )
        self.mode = ModeController(
            client, self.gate, self.session, self.subscriptions, self.metrics, self.files
        )

    async def __aenter__(self) -> DebugCoordinator:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    @property
    def available(self) -> bool:
        return self.gate.available

    @property
    def enabled(self) -> bool:
        return self.mode.enabled

    async def start(self) -> bool:
        """Probe availability and screen recording permission.

        The permission is probed even when debug mode is unavailable.

        Returns:
            Whether the debug subsystem is available
        """
        available = await self.gate.probe()
        await self.permissions.probe()
        return available

    async def shutdown(self) -> None:
        await self.mode.shutdown()
        logger.info("Debug monitor shut down")

    def state(self) -> PanelState:
        snapshot = self.metrics.snapshot
        return PanelState(
            is_available=self.gate.available,
            is_enabled=self.mode.enabled,
            is_loading=self.mode.is_loading,
            error=self.mode.error,
            config=self.mode.config,
            metrics=snapshot,
            mic=snapshot.mic if snapshot is not None else None,
            speaker=snapshot.speaker if snapshot is not None else None,
            files=self.files.records(),
            logs=self.logs.entries(),
            screen_recording_permission=self.permissions.state,
        )

    # Panel operations

    async def set_enabled(self, enabled: bool) -> bool:
        return await self.mode.set_enabled(enabled)

    async def reset_counters(self) -> bool:
        return await self.metrics.reset_counters()

    async def refresh_metrics(self) -> bool:
        return await self.metrics.poll_once()

    async def refresh_files(self) -> bool:
        return await self.files.refresh()

    def clear_logs(self) -> None:
        self.logs.clear()

    def clear_error(self) -> None:
        self.mode.clear_error()

    async def check_permission(self) -> PermissionState:
        return await self.permissions.probe()

    async def request_permission(self) -> PermissionState:
        return await self.permissions.request()

    async def open_permission_settings(self) -> None:
        await self.permissions.open_settings()

    async def open_file(self, path: str) -> None:
        """Reveal a saved file with the OS shell. Failures are only logged."""
        await self._open(path, "file")

    async def open_output_dir(self) -> None:
        """Reveal the debug audio directory. No-op until config is hydrated."""
        config = self.mode.config
        if config is None or not config.audio_output_dir:
            logger.debug("No debug output directory known yet")
            return
        await self._open(config.audio_output_dir, "directory")

    async def _open(self, path: str, kind: str) -> None:
        if self._opener is None:
            logger.warning(f"No opener configured, cannot open {kind} {path}")
            return
        try:
            await self._opener(path)
        except Exception as e:
            logger.error(f"Failed to open {kind} {path}: {e}")
