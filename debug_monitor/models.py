"""Data models exchanged with the capture engine.

This module provides the Pydantic models for every payload crossing the
engine boundary (command responses and pushed events), plus the per-source
projection used by the debug panel. Field names follow the engine's wire
format so payloads validate without aliasing.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AudioSource(str, Enum):
    """Capture source that produced a metric or an artifact."""

    MIC = "mic"
    SPEAKER = "speaker"


class LogLevel(str, Enum):
    """Severity of an engine log entry."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class PermissionState(str, Enum):
    """Screen recording permission as last observed.

    UNKNOWN only exists before the first probe; any failed probe or request
    resolves to DENIED so the panel can always decide whether to offer the
    settings shortcut.
    """

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_granted(cls, granted: bool) -> PermissionState:
        return cls.GRANTED if granted else cls.DENIED


class CaptureConfig(BaseModel):
    """Debug capture configuration reported by the engine."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(..., description="Whether debug mode is active in the engine")
    save_audio_files: bool = Field(..., description="Captured audio is written to WAV files")
    log_audio_buffers: bool = Field(..., description="Per-buffer log entries are emitted")
    log_performance: bool = Field(..., description="Performance log entries are emitted")
    audio_output_dir: str = Field(..., description="Directory receiving debug audio files")


class SourceView(BaseModel):
    """Metrics of a single capture source, without the source prefix."""

    model_config = ConfigDict(frozen=True)

    sample_rate: int
    buffer_usage_percent: float
    samples_processed: int
    samples_dropped: int
    latency_ms: float
    device_name: str | None
    capturing: bool


class MetricsSnapshot(BaseModel):
    """Flat real-time metrics for both capture sources.

    A snapshot is atomic: it always replaces the previous one as a whole.
    Counters only grow within a session, except right after a counter reset.
    """

    model_config = ConfigDict(frozen=True)

    mic_sample_rate: int = Field(0, ge=0)
    speaker_sample_rate: int = Field(0, ge=0)
    mic_buffer_usage_percent: float = Field(0.0, ge=0.0, le=100.0)
    speaker_buffer_usage_percent: float = Field(0.0, ge=0.0, le=100.0)
    mic_samples_processed: int = Field(0, ge=0)
    speaker_samples_processed: int = Field(0, ge=0)
    mic_samples_dropped: int = Field(0, ge=0)
    speaker_samples_dropped: int = Field(0, ge=0)
    mic_latency_ms: float = Field(0.0, ge=0.0)
    speaker_latency_ms: float = Field(0.0, ge=0.0)
    mic_device_name: str | None = None
    speaker_device_name: str | None = None
    mic_capturing: bool = False
    speaker_capturing: bool = False
    last_update: datetime = Field(..., description="When the engine last updated the metrics")

    def source_view(self, source: AudioSource) -> SourceView:
        """Project the snapshot onto one source.

        Args:
            source: Source whose prefixed fields are extracted

        Returns:
            SourceView recomputed from this snapshot
        """
        prefix = f"{source.value}_"
        return SourceView(
            **{name: getattr(self, prefix + name) for name in SourceView.model_fields}
        )

    @property
    def mic(self) -> SourceView:
        return self.source_view(AudioSource.MIC)

    @property
    def speaker(self) -> SourceView:
        return self.source_view(AudioSource.SPEAKER)


class ArtifactRecord(BaseModel):
    """Saved debug audio file. The path is the record's identity."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Absolute path of the WAV file")
    source: AudioSource = Field(..., description="Source that was recorded")
    created_at: datetime = Field(..., description="File creation time")
    duration_secs: float = Field(..., ge=0.0, description="Audio duration in seconds")
    sample_rate: int = Field(..., gt=0, description="Sample rate in Hz")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")


class LogEntry(BaseModel):
    """Engine log line pushed to the panel."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    level: LogLevel
    message: str
