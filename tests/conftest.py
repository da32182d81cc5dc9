"""Global pytest configuration and fixtures for debug monitor tests.

This module provides shared pytest fixtures used across all test modules,
including configuration reset for test isolation and a local capture
engine writing into a temporary directory.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest

from debug_monitor.config import EngineSettings, LogBufferSettings, PollingSettings, Settings
from debug_monitor.engine import EventHandler, LocalCaptureEngine, Unlisten
from debug_monitor.models import ArtifactRecord, AudioSource, LogEntry, LogLevel, MetricsSnapshot


@pytest.fixture(autouse=True, scope="function")
def reset_config_fixture() -> Generator[None, None, None]:
    """Automatically reset configuration before and after each test.

    This fixture ensures test isolation by clearing the global configuration
    singleton before each test runs, and cleaning up after test completion.

    Yields:
        Generator: Control to the test function
    """
    from debug_monitor.config import reset_config

    # Reset config before test
    reset_config()

    # Yield control to the test
    yield

    # Reset config after test (cleanup)
    reset_config()


class RecordingEngine(LocalCaptureEngine):
    """Local engine that also keeps every handler ever registered.

    Lets tests fire a handler after it was unsubscribed, the way a
    late event delivered by the engine would.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.handlers: dict[str, EventHandler] = {}

    async def listen(self, event: str, handler: EventHandler) -> Unlisten:
        self.handlers[event] = handler
        return await super().listen(event, handler)


@pytest.fixture
def engine_settings(tmp_path: Path) -> EngineSettings:
    return EngineSettings(output_dir=str(tmp_path / "debug_audio"))


@pytest.fixture
def settings(engine_settings: EngineSettings) -> Settings:
    """Settings with a poll interval long enough that no tick fires during a test."""
    return Settings(
        polling=PollingSettings(metrics_interval_ms=10000),
        logs=LogBufferSettings(capacity=5),
        engine=engine_settings,
    )


@pytest.fixture
def engine(engine_settings: EngineSettings) -> RecordingEngine:
    return RecordingEngine(engine_settings)


def make_snapshot(**overrides: Any) -> MetricsSnapshot:
    fields: dict[str, Any] = {
        "mic_sample_rate": 48000,
        "speaker_sample_rate": 44100,
        "mic_samples_processed": 1000,
        "speaker_samples_processed": 2000,
        "last_update": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return MetricsSnapshot(**fields)


def make_record(name: str, source: AudioSource = AudioSource.MIC) -> ArtifactRecord:
    return ArtifactRecord(
        path=f"/tmp/debug_audio/{name}.wav",
        source=source,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        duration_secs=1.5,
        sample_rate=48000,
        size_bytes=144044,
    )


def make_log(message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
    return LogEntry(
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc), level=level, message=message
    )
