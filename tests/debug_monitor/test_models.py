"""Unit tests for engine payload models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from conftest import make_snapshot
from debug_monitor.models import (
    ArtifactRecord,
    AudioSource,
    LogEntry,
    LogLevel,
    MetricsSnapshot,
    PermissionState,
)


class TestMetricsSnapshot:
    """Test flat metrics and the per-source projection."""

    def test_source_view_extracts_prefixed_fields(self) -> None:
        snapshot = make_snapshot(
            mic_buffer_usage_percent=42.5,
            mic_samples_dropped=7,
            mic_latency_ms=12.0,
            mic_device_name="USB Mic",
            mic_capturing=True,
        )

        mic = snapshot.source_view(AudioSource.MIC)

        assert mic.sample_rate == 48000
        assert mic.buffer_usage_percent == 42.5
        assert mic.samples_processed == 1000
        assert mic.samples_dropped == 7
        assert mic.latency_ms == 12.0
        assert mic.device_name == "USB Mic"
        assert mic.capturing is True

    def test_speaker_property_matches_source_view(self) -> None:
        snapshot = make_snapshot()

        assert snapshot.speaker == snapshot.source_view(AudioSource.SPEAKER)
        assert snapshot.speaker.sample_rate == 44100
        assert snapshot.speaker.device_name is None

    def test_validates_wire_payload(self) -> None:
        """Test that a JSON payload as pushed by the engine validates."""
        payload = make_snapshot().model_dump(mode="json")

        snapshot = MetricsSnapshot.model_validate(payload)

        assert snapshot.last_update == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_buffer_usage_above_100_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_snapshot(mic_buffer_usage_percent=150.0)

    def test_snapshot_is_immutable(self) -> None:
        snapshot = make_snapshot()

        with pytest.raises(ValidationError):
            snapshot.mic_samples_processed = 5


class TestArtifactRecord:
    """Test artifact record validation."""

    def test_sample_rate_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ArtifactRecord(
                path="/tmp/mic.wav",
                source="mic",
                created_at="2024-01-01T00:00:00Z",
                duration_secs=1.0,
                sample_rate=0,
                size_bytes=10,
            )

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ArtifactRecord(
                path="/tmp/mic.wav",
                source="mic",
                created_at="2024-01-01T00:00:00Z",
                duration_secs=-1.0,
                sample_rate=48000,
                size_bytes=10,
            )

    def test_source_parsed_from_wire_value(self) -> None:
        record = ArtifactRecord(
            path="/tmp/speaker.wav",
            source="speaker",
            created_at="2024-01-01T00:00:00Z",
            duration_secs=2.0,
            sample_rate=44100,
            size_bytes=176444,
        )

        assert record.source is AudioSource.SPEAKER


class TestLogEntry:
    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LogEntry(timestamp="2024-01-01T00:00:00Z", level="fatal", message="boom")

    def test_level_values(self) -> None:
        assert [level.value for level in LogLevel] == ["debug", "info", "warn", "error"]


class TestPermissionState:
    def test_from_granted(self) -> None:
        assert PermissionState.from_granted(True) is PermissionState.GRANTED
        assert PermissionState.from_granted(False) is PermissionState.DENIED
