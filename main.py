"""Capture Debug Monitor - diagnostics panel backend for the audio capture engine.

This is the main entry point. It runs the debug coordinator against the
in-process capture engine, either as a console demo that drives a
simulated capture session or as the panel HTTP API.

The application integrates:
- Availability probing and screen recording permission tracking
- Debug mode toggling with event subscriptions and metrics polling
- Bounded log buffering and saved audio file listing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import signal
import sys

from debug_monitor.config import ConfigurationError, Settings, get_config
from debug_monitor.coordinator import DebugCoordinator
from debug_monitor.engine import LocalCaptureEngine
from debug_monitor.formatting import (
    describe_artifact,
    describe_log,
    describe_source,
    source_status,
)
from debug_monitor.models import AudioSource, LogLevel

logger = logging.getLogger(__name__)

SIMULATION_TICK_SECONDS = 0.1
SIMULATED_SAMPLE_RATE = 48000


def configure_logging(config: Settings) -> None:
    """Configure root logging from settings."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.logging.file_path:
        handlers.append(logging.FileHandler(config.logging.file_path))

    logging.basicConfig(
        level=logging.DEBUG if config.debug else config.logging.level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


async def open_with_shell(path: str) -> None:
    """Open a file or directory with the platform's default handler."""
    if sys.platform == "darwin":
        command = ["open", path]
    elif sys.platform == "win32":
        command = ["explorer", path]
    else:
        command = ["xdg-open", path]

    process = await asyncio.create_subprocess_exec(*command)
    await process.wait()


async def simulate_capture(engine: LocalCaptureEngine, stop_event: asyncio.Event) -> None:
    """Feed the local engine with synthetic capture activity until stopped."""
    device_names = {AudioSource.MIC: "Built-in Microphone", AudioSource.SPEAKER: "System Output"}
    for source, device_name in device_names.items():
        engine.update_source(
            source, sample_rate=SIMULATED_SAMPLE_RATE, device_name=device_name, capturing=True
        )
    samples_per_tick = int(SIMULATED_SAMPLE_RATE * SIMULATION_TICK_SECONDS)
    tick = 0

    while not stop_event.is_set():
        await asyncio.sleep(SIMULATION_TICK_SECONDS)
        tick += 1

        for source in AudioSource:
            dropped = samples_per_tick // 10 if random.random() < 0.02 else 0
            engine.record_samples(source, samples_per_tick - dropped, dropped)
            engine.update_source(
                source,
                buffer_usage_percent=random.uniform(5.0, 60.0),
                latency_ms=random.uniform(8.0, 25.0),
            )
            if dropped:
                engine.log(LogLevel.WARN, f"{source.value}: dropped {dropped} samples")

        if tick % 5 == 0:
            engine.publish_metrics()
        if tick % 10 == 0:
            engine.log(LogLevel.INFO, f"Processed buffer batch {tick // 10}")
        if tick % 30 == 0:
            silence = bytes(2 * SIMULATED_SAMPLE_RATE)
            engine.save_wav(random.choice(list(AudioSource)), silence, SIMULATED_SAMPLE_RATE)


def log_panel(coordinator: DebugCoordinator) -> None:
    """Log what the debug panel would render."""
    state = coordinator.state()
    if not state.is_available:
        return

    logger.info(
        f"Panel - enabled: {state.is_enabled}, files: {len(state.files)}, "
        f"logs: {len(state.logs)}, permission: {state.screen_recording_permission.value}"
    )
    if state.mic is not None and state.speaker is not None:
        for label, view in (("Mic", state.mic), ("Speaker", state.speaker)):
            level = logging.INFO if source_status(view) == "normal" else logging.WARNING
            logger.log(level, describe_source(label, view))
    if state.logs:
        logger.info(f"Latest log: {describe_log(state.logs[-1])}")
    if state.files:
        logger.info(f"Latest file: {describe_artifact(state.files[-1])}")
    if state.error:
        logger.warning(f"Panel error: {state.error}")


async def run_demo(config: Settings, duration: float) -> None:
    """Run a simulated capture session and log the panel state."""
    engine = LocalCaptureEngine(config.engine)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    async with DebugCoordinator(engine, config, opener=open_with_shell) as coordinator:
        if not coordinator.available:
            logger.info("Debug subsystem unavailable, nothing to show")
            return

        await coordinator.set_enabled(True)
        simulation = asyncio.create_task(simulate_capture(engine, stop_event))
        loop.call_later(duration, stop_event.set)

        try:
            while not stop_event.is_set():
                log_panel(coordinator)
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=2.0)
                except TimeoutError:
                    continue
        finally:
            stop_event.set()
            await simulation
            await coordinator.refresh_files()
            log_panel(coordinator)
            await coordinator.set_enabled(False)


def run_server(config: Settings) -> None:
    """Serve the panel API for a UI process."""
    import uvicorn

    from debug_monitor.panel_api import create_app

    engine = LocalCaptureEngine(config.engine)
    app = create_app(DebugCoordinator(engine, config, opener=open_with_shell))
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="info")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture debug monitor")
    parser.add_argument(
        "mode", choices=["demo", "serve"], nargs="?", default="demo", help="What to run"
    )
    parser.add_argument(
        "--duration", type=float, default=10.0, help="Demo duration in seconds"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config)
    logger.info(f"Capture debug monitor starting ({args.mode})...")

    if args.mode == "serve":
        run_server(config)
    else:
        asyncio.run(run_demo(config, args.duration))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.error(f"Application crashed: {e}")
        sys.exit(1)
