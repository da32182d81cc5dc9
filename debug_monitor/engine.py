"""Capture engine boundary for the debug monitor.

This module defines the request/response commands and pushed events the
monitor depends on, the abstract EngineClient every engine binding
implements, and LocalCaptureEngine, an in-process engine that keeps debug
state in memory and scans its output directory for saved WAV files.
"""

from __future__ import annotations

import asyncio
import logging
import wave
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from debug_monitor.config import EngineSettings
from debug_monitor.models import (
    ArtifactRecord,
    AudioSource,
    CaptureConfig,
    LogEntry,
    LogLevel,
    MetricsSnapshot,
)

logger = logging.getLogger(__name__)

# Request/response command names
IS_DEBUG_AVAILABLE = "is_debug_available"
TOGGLE_DEBUG_MODE = "toggle_debug_mode"
GET_DEBUG_CONFIG = "get_debug_config"
GET_DEBUG_METRICS = "get_debug_metrics"
LIST_DEBUG_FILES = "list_debug_files"
RESET_DEBUG_COUNTERS = "reset_debug_counters"
CHECK_SCREEN_RECORDING = "check_screen_recording_permission"
REQUEST_SCREEN_RECORDING = "request_screen_recording_permission"
OPEN_SCREEN_RECORDING_SETTINGS = "open_screen_recording_settings"

# Pushed event names
METRICS_EVENT = "debug:metrics"
LOG_EVENT = "debug:log"
FILE_SAVED_EVENT = "debug:file-saved"

EVENT_NAMES = (METRICS_EVENT, LOG_EVENT, FILE_SAVED_EVENT)

EventHandler = Callable[[dict[str, Any]], None]
Unlisten = Callable[[], None]


class EngineCommandError(Exception):
    """Raised when the engine rejects or fails a command.

    Args:
        command: Name of the failing command
        message: Error description reported by the engine
    """

    def __init__(self, command: str, message: str) -> None:
        super().__init__(message)
        self.command = command


class EngineClient(ABC):
    """Asynchronous binding to a capture engine.

    Every command suspends until the engine answers. Pushed events are
    delivered to handlers registered with listen(), as raw JSON payloads.
    """

    @abstractmethod
    async def is_debug_available(self) -> bool:
        pass

    @abstractmethod
    async def toggle_debug_mode(self, enabled: bool) -> None:
        pass

    @abstractmethod
    async def get_debug_config(self) -> CaptureConfig:
        pass

    @abstractmethod
    async def get_debug_metrics(self) -> MetricsSnapshot:
        pass

    @abstractmethod
    async def list_debug_files(self) -> list[ArtifactRecord]:
        pass

    @abstractmethod
    async def reset_debug_counters(self) -> None:
        pass

    @abstractmethod
    async def check_screen_recording_permission(self) -> bool:
        pass

    @abstractmethod
    async def request_screen_recording_permission(self) -> bool:
        pass

    @abstractmethod
    async def open_screen_recording_settings(self) -> None:
        pass

    @abstractmethod
    async def listen(self, event: str, handler: EventHandler) -> Unlisten:
        """Register a handler for a pushed event.

        Args:
            event: One of EVENT_NAMES
            handler: Callback receiving the JSON payload

        Returns:
            Callable removing the handler; calling it twice is harmless
        """


@dataclass
class _SourceState:
    """Mutable per-source metrics held by the local engine."""

    sample_rate: int = 0
    buffer_usage_percent: float = 0.0
    samples_processed: int = 0
    samples_dropped: int = 0
    latency_ms: float = 0.0
    device_name: str | None = None
    capturing: bool = False


@dataclass
class _EngineState:
    config: CaptureConfig
    sources: dict[AudioSource, _SourceState] = field(
        default_factory=lambda: {source: _SourceState() for source in AudioSource}
    )
    registered_files: list[ArtifactRecord] = field(default_factory=list)
    last_update: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LocalCaptureEngine(EngineClient):
    """In-process capture engine keeping debug state in memory.

    Metrics and log events are only pushed while debug mode is enabled;
    file-saved notifications are always pushed. list_debug_files() scans the
    output directory rather than the in-memory registry, so files removed
    from disk disappear from the listing.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        debug_available: bool = True,
        screen_recording_granted: bool = True,
        grant_on_request: bool = True,
    ) -> None:
        """Initialize the local engine.

        Args:
            settings: Engine settings. Defaults are used if None
            debug_available: Whether the debug subsystem is compiled in
            screen_recording_granted: Initial screen recording permission
            grant_on_request: Permission outcome when the user is prompted
        """
        self.settings = settings or EngineSettings()
        self.debug_available = debug_available
        self.screen_recording_granted = screen_recording_granted
        self.grant_on_request = grant_on_request
        self.settings_opened = 0

        output_dir = Path(self.settings.output_dir).expanduser().resolve()
        self._state = _EngineState(
            config=CaptureConfig(
                enabled=False,
                save_audio_files=self.settings.save_audio_files,
                log_audio_buffers=self.settings.log_audio_buffers,
                log_performance=self.settings.log_performance,
                audio_output_dir=str(output_dir),
            )
        )
        self._listeners: dict[str, list[EventHandler]] = {name: [] for name in EVENT_NAMES}

    @property
    def enabled(self) -> bool:
        return self._state.config.enabled

    @property
    def output_dir(self) -> Path:
        return Path(self._state.config.audio_output_dir)

    def listener_count(self, event: str | None = None) -> int:
        """Number of registered handlers, for one event or all of them."""
        if event is not None:
            return len(self._listeners[event])
        return sum(len(handlers) for handlers in self._listeners.values())

    # Commands

    async def is_debug_available(self) -> bool:
        return self.debug_available

    async def toggle_debug_mode(self, enabled: bool) -> None:
        self._require_available(TOGGLE_DEBUG_MODE)
        self._state.config = self._state.config.model_copy(update={"enabled": enabled})
        logger.info(f"Debug mode {'enabled' if enabled else 'disabled'}")

    async def get_debug_config(self) -> CaptureConfig:
        self._require_available(GET_DEBUG_CONFIG)
        return self._state.config

    async def get_debug_metrics(self) -> MetricsSnapshot:
        self._require_available(GET_DEBUG_METRICS)
        return self.snapshot()

    async def list_debug_files(self) -> list[ArtifactRecord]:
        self._require_available(LIST_DEBUG_FILES)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._scan_output_dir)

    async def reset_debug_counters(self) -> None:
        self._require_available(RESET_DEBUG_COUNTERS)
        for source_state in self._state.sources.values():
            source_state.samples_processed = 0
            source_state.samples_dropped = 0
        logger.info("Debug counters reset")

    async def check_screen_recording_permission(self) -> bool:
        return self.screen_recording_granted

    async def request_screen_recording_permission(self) -> bool:
        if not self.screen_recording_granted:
            self.screen_recording_granted = self.grant_on_request
        return self.screen_recording_granted

    async def open_screen_recording_settings(self) -> None:
        self.settings_opened += 1
        logger.info("Screen recording settings requested")

    async def listen(self, event: str, handler: EventHandler) -> Unlisten:
        if event not in self._listeners:
            raise EngineCommandError("listen", f"Unknown event: {event}")

        handlers = self._listeners[event]
        handlers.append(handler)

        def unlisten() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unlisten

    # Engine-side producers

    def snapshot(self) -> MetricsSnapshot:
        """Build the flat metrics snapshot from the current source state."""
        fields: dict[str, Any] = {"last_update": self._state.last_update}
        for source, source_state in self._state.sources.items():
            for name, value in vars(source_state).items():
                fields[f"{source.value}_{name}"] = value
        return MetricsSnapshot(**fields)

    def update_source(self, source: AudioSource, **values: Any) -> None:
        """Update gauge fields (device, rate, usage, latency) of one source."""
        source_state = self._state.sources[source]
        for name, value in values.items():
            if not hasattr(source_state, name):
                raise AttributeError(f"Unknown source metric: {name}")
            setattr(source_state, name, value)
        self._state.last_update = datetime.now(timezone.utc)

    def record_samples(self, source: AudioSource, processed: int, dropped: int = 0) -> None:
        """Advance the monotonic sample counters of one source."""
        if processed < 0 or dropped < 0:
            raise ValueError("Sample counts must be non-negative")
        source_state = self._state.sources[source]
        source_state.samples_processed += processed
        source_state.samples_dropped += dropped
        self._state.last_update = datetime.now(timezone.utc)

    def publish_metrics(self) -> bool:
        """Push the current snapshot if debug mode is enabled."""
        if not self.enabled:
            return False
        self.emit(METRICS_EVENT, self.snapshot().model_dump(mode="json"))
        return True

    def log(self, level: LogLevel, message: str) -> bool:
        """Push a log entry if debug mode is enabled."""
        if not self.enabled:
            return False
        entry = LogEntry(timestamp=datetime.now(timezone.utc), level=level, message=message)
        self.emit(LOG_EVENT, entry.model_dump(mode="json"))
        return True

    def register_artifact(self, record: ArtifactRecord) -> None:
        """Register a saved file and notify listeners."""
        self._state.registered_files.append(record)
        self.emit(FILE_SAVED_EVENT, record.model_dump(mode="json"))
        logger.info(
            f"Debug audio file saved: {record.path} "
            f"({record.duration_secs:.1f}s, {record.size_bytes} bytes)"
        )

    def save_wav(
        self, source: AudioSource, frames: bytes, sample_rate: int, sample_width: int = 2
    ) -> ArtifactRecord | None:
        """Write mono PCM frames to a timestamped WAV file.

        Nothing is written while debug mode or file saving is disabled.

        Args:
            source: Source the audio was captured from
            frames: Raw little-endian PCM bytes
            sample_rate: Sample rate in Hz
            sample_width: Bytes per sample

        Returns:
            The registered ArtifactRecord, or None if saving is disabled
        """
        config = self._state.config
        if not config.enabled or not config.save_audio_files:
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        path = self.output_dir / f"{source.value}_{timestamp}.wav"

        with wave.open(str(path), "wb") as writer:
            writer.setnchannels(1)
            writer.setsampwidth(sample_width)
            writer.setframerate(sample_rate)
            writer.writeframes(frames)

        record = ArtifactRecord(
            path=str(path),
            source=source,
            created_at=datetime.now(timezone.utc),
            duration_secs=len(frames) / sample_width / sample_rate,
            sample_rate=sample_rate,
            size_bytes=path.stat().st_size,
        )
        self.register_artifact(record)
        return record

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver a payload to every handler registered for the event."""
        for handler in list(self._listeners[event]):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Listener for {event} failed: {e}")

    def _require_available(self, command: str) -> None:
        if not self.debug_available:
            raise EngineCommandError(command, "Debug mode not available in release builds")

    def _scan_output_dir(self) -> list[ArtifactRecord]:
        """Read every mic_*.wav / speaker_*.wav in the output directory, newest first."""
        directory = self.output_dir
        if not directory.is_dir():
            return []

        records = []
        for path in directory.iterdir():
            if path.suffix != ".wav":
                continue
            record = _read_wav_record(path)
            if record is not None:
                records.append(record)

        records.sort(key=lambda record: record.created_at, reverse=True)
        return records


def _read_wav_record(path: Path) -> ArtifactRecord | None:
    if path.name.startswith("mic_"):
        source = AudioSource.MIC
    elif path.name.startswith("speaker_"):
        source = AudioSource.SPEAKER
    else:
        return None

    try:
        stat = path.stat()
        with wave.open(str(path), "rb") as reader:
            sample_rate = reader.getframerate()
            frame_count = reader.getnframes()
    except (OSError, EOFError, wave.Error) as e:
        logger.warning(f"Skipping unreadable debug audio file {path}: {e}")
        return None

    if sample_rate <= 0:
        return None

    return ArtifactRecord(
        path=str(path),
        source=source,
        created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
        duration_secs=frame_count / sample_rate,
        sample_rate=sample_rate,
        size_bytes=stat.st_size,
    )
