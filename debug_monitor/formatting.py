"""Display helpers for the debug panel."""

from __future__ import annotations

from debug_monitor.models import ArtifactRecord, LogEntry, SourceView

# Buffer fill above which a source is flagged
BUFFER_WARNING_THRESHOLD = 80.0


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_duration(seconds: float) -> str:
    """Format a duration as "12.3s" or "2m 5.0s"."""
    minutes = int(seconds // 60)
    remainder = f"{seconds % 60:.1f}"
    return f"{minutes}m {remainder}s" if minutes > 0 else f"{remainder}s"


def format_number(value: int) -> str:
    return f"{value:,}"


def source_status(view: SourceView) -> str:
    """Health of a source: "error" once samples drop, "warning" on a nearly full buffer."""
    if view.samples_dropped > 0:
        return "error"
    if view.buffer_usage_percent > BUFFER_WARNING_THRESHOLD:
        return "warning"
    return "normal"


def describe_source(label: str, view: SourceView) -> str:
    """One-line summary of a source's metrics, flagged when unhealthy."""
    device = view.device_name or "no device"
    status = "capturing" if view.capturing else "idle"
    line = (
        f"{label}: {status} on {device} @ {view.sample_rate} Hz, "
        f"buffer {view.buffer_usage_percent:.1f}%, "
        f"processed {format_number(view.samples_processed)}, "
        f"dropped {format_number(view.samples_dropped)}, "
        f"latency {view.latency_ms:.1f} ms"
    )
    health = source_status(view)
    return line if health == "normal" else f"{line} [{health.upper()}]"


def describe_artifact(record: ArtifactRecord) -> str:
    return (
        f"{record.path} [{record.source.value}] "
        f"{format_duration(record.duration_secs)}, {record.sample_rate} Hz, "
        f"{format_bytes(record.size_bytes)}"
    )


def describe_log(entry: LogEntry) -> str:
    return f"{entry.timestamp:%H:%M:%S} {entry.level.value.upper():<5} {entry.message}"
