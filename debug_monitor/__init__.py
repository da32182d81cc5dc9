"""Capture Debug Monitor.

This package keeps a consistent, bounded view of the audio capture
engine's debug subsystem (metrics, saved files, log stream and screen
recording permission) for a single UI process.
"""

from .coordinator import DebugCoordinator, PanelState
from .engine import EngineClient, EngineCommandError, LocalCaptureEngine
from .models import (
    ArtifactRecord,
    AudioSource,
    CaptureConfig,
    LogEntry,
    LogLevel,
    MetricsSnapshot,
    PermissionState,
    SourceView,
)

__all__ = [
    # Coordinator
    "DebugCoordinator",
    "PanelState",
    # Engine boundary
    "EngineClient",
    "EngineCommandError",
    "LocalCaptureEngine",
    # Models
    "ArtifactRecord",
    "AudioSource",
    "CaptureConfig",
    "LogEntry",
    "LogLevel",
    "MetricsSnapshot",
    "PermissionState",
    "SourceView",
]
