"""Tests for debug mode lifecycle through the coordinator's ModeController.

These tests drive a LocalCaptureEngine and use AsyncMock patches to inject
engine failures and slow responses.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import RecordingEngine
from debug_monitor.config import Settings
from debug_monitor.coordinator import DebugCoordinator
from debug_monitor.engine import (
    GET_DEBUG_CONFIG,
    LIST_DEBUG_FILES,
    METRICS_EVENT,
    TOGGLE_DEBUG_MODE,
    EngineCommandError,
)
from debug_monitor.models import AudioSource


@pytest.fixture
def coordinator(engine: RecordingEngine, settings: Settings) -> DebugCoordinator:
    return DebugCoordinator(engine, settings)


class TestEnable:
    """Test the transition to enabled."""

    @pytest.mark.asyncio
    async def test_enable_starts_session_and_hydrates(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        engine.record_samples(AudioSource.MIC, 480)
        await coordinator.start()

        assert await coordinator.set_enabled(True) is True

        state = coordinator.state()
        assert state.is_enabled
        assert not state.is_loading
        assert state.error is None
        assert state.config is not None and state.config.enabled
        assert state.mic is not None and state.mic.samples_processed == 480
        assert engine.enabled
        assert engine.listener_count() == 3
        assert coordinator.metrics.is_polling
        await coordinator.shutdown()

    @pytest.mark.asyncio
    async def test_toggle_failure_leaves_state_unchanged(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()

        with patch.object(
            engine,
            "toggle_debug_mode",
            AsyncMock(side_effect=EngineCommandError(TOGGLE_DEBUG_MODE, "device busy")),
        ):
            assert await coordinator.set_enabled(True) is False

        state = coordinator.state()
        assert not state.is_enabled
        assert state.error == "Failed to toggle debug: device busy"
        assert engine.listener_count() == 0
        assert not coordinator.metrics.is_polling

    @pytest.mark.asyncio
    async def test_hydration_failure_is_isolated(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        """Test that a failing file listing does not block config and metrics."""
        await coordinator.start()

        with patch.object(
            engine,
            "list_debug_files",
            AsyncMock(side_effect=EngineCommandError(LIST_DEBUG_FILES, "permission denied")),
        ):
            assert await coordinator.set_enabled(True) is True

        state = coordinator.state()
        assert state.config is not None
        assert state.metrics is not None
        assert state.files == ()
        assert state.error is None
        await coordinator.shutdown()

    @pytest.mark.asyncio
    async def test_config_failure_is_logged_only(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()

        with patch.object(
            engine,
            "get_debug_config",
            AsyncMock(side_effect=EngineCommandError(GET_DEBUG_CONFIG, "unreadable")),
        ):
            await coordinator.set_enabled(True)

        state = coordinator.state()
        assert state.is_enabled
        assert state.config is None
        assert state.metrics is not None
        assert state.error is None
        await coordinator.shutdown()

    @pytest.mark.asyncio
    async def test_concurrent_toggle_is_rejected_not_queued(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        release = asyncio.Event()
        original_toggle = engine.toggle_debug_mode

        async def slow_toggle(enabled: bool) -> None:
            await release.wait()
            await original_toggle(enabled)

        with patch.object(engine, "toggle_debug_mode", side_effect=slow_toggle) as toggle:
            first = asyncio.create_task(coordinator.set_enabled(True))
            await asyncio.sleep(0)
            assert coordinator.state().is_loading

            assert await coordinator.set_enabled(True) is False
            assert await coordinator.set_enabled(False) is False

            release.set()
            assert await first is True

        assert toggle.await_count == 1
        assert coordinator.enabled
        await coordinator.shutdown()

    @pytest.mark.asyncio
    async def test_subscription_failure_rolls_back(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()

        with patch.object(
            engine, "listen", AsyncMock(side_effect=EngineCommandError("listen", "no event bus"))
        ):
            assert await coordinator.set_enabled(True) is False

        assert not coordinator.enabled
        assert not engine.enabled
        assert not coordinator.session.active
        assert not coordinator.metrics.is_polling
        assert coordinator.state().error == "Failed to toggle debug: no event bus"


class TestDisable:
    """Test the transition to disabled and teardown."""

    @pytest.mark.asyncio
    async def test_disable_when_disabled_makes_no_call(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        before = coordinator.state()

        with patch.object(engine, "toggle_debug_mode", AsyncMock()) as toggle:
            assert await coordinator.set_enabled(False) is False

        toggle.assert_not_awaited()
        assert coordinator.state() == before

    @pytest.mark.asyncio
    async def test_disable_tears_down_session(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        await coordinator.set_enabled(True)

        assert await coordinator.set_enabled(False) is True

        assert not coordinator.enabled
        assert not engine.enabled
        assert engine.listener_count() == 0
        assert not coordinator.metrics.is_polling
        assert not coordinator.session.active

    @pytest.mark.asyncio
    async def test_disable_failure_still_tears_down(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        await coordinator.set_enabled(True)

        with patch.object(
            engine,
            "toggle_debug_mode",
            AsyncMock(side_effect=EngineCommandError(TOGGLE_DEBUG_MODE, "engine hung")),
        ):
            assert await coordinator.set_enabled(False) is False

        assert coordinator.enabled
        assert coordinator.state().error == "Failed to toggle debug: engine hung"
        assert engine.listener_count() == 0
        assert not coordinator.metrics.is_polling
        assert not coordinator.session.active

        assert await coordinator.set_enabled(False) is True
        assert not coordinator.enabled

    @pytest.mark.asyncio
    async def test_pushed_metrics_after_disable_are_dropped(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        await coordinator.set_enabled(True)
        before = coordinator.state().metrics
        late_handler = engine.handlers[METRICS_EVENT]

        await coordinator.set_enabled(False)
        engine.record_samples(AudioSource.SPEAKER, 5000)
        late_handler(engine.snapshot().model_dump(mode="json"))

        assert coordinator.state().metrics == before

    @pytest.mark.asyncio
    async def test_metrics_event_during_disable_toggle_is_dropped(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        """Test that the session is torn down before the disable command is awaited."""
        await coordinator.start()
        await coordinator.set_enabled(True)
        before = coordinator.state().metrics
        original_toggle = engine.toggle_debug_mode

        async def toggle_with_late_event(enabled: bool) -> None:
            engine.record_samples(AudioSource.MIC, 100)
            engine.publish_metrics()
            await original_toggle(enabled)

        with patch.object(engine, "toggle_debug_mode", side_effect=toggle_with_late_event):
            await coordinator.set_enabled(False)

        assert coordinator.state().metrics == before
        assert coordinator.subscriptions.dropped_events == 1

    @pytest.mark.asyncio
    async def test_no_ticks_after_disable(self, engine: RecordingEngine, settings: Settings) -> None:
        settings.polling.metrics_interval_ms = 50
        coordinator = DebugCoordinator(engine, settings)
        await coordinator.start()
        await coordinator.set_enabled(True)
        await asyncio.sleep(0.2)
        assert coordinator.metrics.poll_count >= 2

        await coordinator.set_enabled(False)
        polls = coordinator.metrics.poll_count
        await asyncio.sleep(0.15)

        assert coordinator.metrics.poll_count == polls

    @pytest.mark.asyncio
    async def test_reenable_after_disable(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        await coordinator.set_enabled(True)
        await coordinator.set_enabled(False)

        assert await coordinator.set_enabled(True) is True

        assert engine.listener_count() == 3
        assert coordinator.metrics.is_polling
        await coordinator.shutdown()
        assert engine.listener_count() == 0


class TestShutdownDuringEnable:
    """Test shutdown racing an enable that has not finished yet."""

    def setup_method(self) -> None:
        """Set up test fixtures before each test method."""
        self.release = asyncio.Event()

    @pytest.mark.asyncio
    async def test_shutdown_while_toggle_in_flight(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        original_toggle = engine.toggle_debug_mode

        async def slow_toggle(enabled: bool) -> None:
            if enabled:
                await self.release.wait()
            await original_toggle(enabled)

        with patch.object(engine, "toggle_debug_mode", side_effect=slow_toggle):
            enabling = asyncio.create_task(coordinator.set_enabled(True))
            await asyncio.sleep(0)
            assert coordinator.state().is_loading

            await coordinator.shutdown()
            self.release.set()

            assert await enabling is False

        assert not engine.enabled
        assert not coordinator.enabled
        assert not coordinator.session.active
        assert engine.listener_count() == 0
        assert not coordinator.metrics.is_polling

    @pytest.mark.asyncio
    async def test_shutdown_while_hydrating(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        original_get_config = engine.get_debug_config
        hydrating = asyncio.Event()

        async def slow_get_config():
            hydrating.set()
            await self.release.wait()
            return await original_get_config()

        with patch.object(engine, GET_DEBUG_CONFIG, side_effect=slow_get_config):
            enabling = asyncio.create_task(coordinator.set_enabled(True))
            await asyncio.wait_for(hydrating.wait(), timeout=1.0)
            assert engine.enabled
            assert coordinator.session.active

            await coordinator.shutdown()
            self.release.set()

            assert await enabling is False

        assert not engine.enabled
        assert not coordinator.enabled
        assert not coordinator.session.active
        assert engine.listener_count() == 0
        assert not coordinator.metrics.is_polling
        assert coordinator.state().config is None

    @pytest.mark.asyncio
    async def test_enable_refused_after_shutdown(
        self, coordinator: DebugCoordinator, engine: RecordingEngine
    ) -> None:
        await coordinator.start()
        await coordinator.shutdown()

        assert await coordinator.set_enabled(True) is False
        assert not engine.enabled
