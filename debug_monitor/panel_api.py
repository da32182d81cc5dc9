"""FastAPI surface for the debug panel.

This module exposes the coordinator's PanelState and public operations
over HTTP. When the debug subsystem is unavailable every route answers
404, so the panel renders nothing.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from debug_monitor.coordinator import DebugCoordinator, PanelState
from debug_monitor.models import PermissionState

logger = logging.getLogger(__name__)


class ModeRequest(BaseModel):
    """Requested debug mode."""

    enabled: bool = Field(..., description="Enable or disable debug mode")


class OpenFileRequest(BaseModel):
    """File to reveal with the OS shell."""

    path: str = Field(..., min_length=1, description="Path of a saved debug audio file")


class OperationResult(BaseModel):
    """Outcome of a panel operation along with the resulting state."""

    ok: bool
    state: PanelState


class PermissionResult(BaseModel):
    """Screen recording permission after a check or request."""

    permission: PermissionState


def get_coordinator(request: Request) -> DebugCoordinator:
    return request.app.state.coordinator


def require_available(
    coordinator: DebugCoordinator = Depends(get_coordinator),
) -> DebugCoordinator:
    if not coordinator.available:
        raise HTTPException(status_code=404, detail="Debug mode not available")
    return coordinator


def create_app(coordinator: DebugCoordinator) -> FastAPI:
    """Create and configure the panel API application.

    Args:
        coordinator: Coordinator started on startup and shut down on exit

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        """FastAPI lifespan context manager for startup/shutdown."""
        logger.info("Debug panel API starting up...")
        await coordinator.start()

        try:
            yield

        finally:
            logger.info("Debug panel API shutting down...")
            try:
                await coordinator.shutdown()
            except Exception as e:
                logger.error(f"Error shutting down debug coordinator: {e}")

    app = FastAPI(
        title="Capture Debug Monitor API",
        description="Diagnostics panel for the audio capture engine",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator

    @app.get("/debug/state", response_model=PanelState)
    async def read_state(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> PanelState:
        return coordinator.state()

    @app.post("/debug/mode", response_model=OperationResult)
    async def set_mode(
        body: ModeRequest, coordinator: DebugCoordinator = Depends(require_available)
    ) -> OperationResult:
        ok = await coordinator.set_enabled(body.enabled)
        return OperationResult(ok=ok, state=coordinator.state())

    @app.post("/debug/counters/reset", response_model=OperationResult)
    async def reset_counters(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> OperationResult:
        ok = await coordinator.reset_counters()
        return OperationResult(ok=ok, state=coordinator.state())

    @app.post("/debug/files/refresh", response_model=OperationResult)
    async def refresh_files(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> OperationResult:
        ok = await coordinator.refresh_files()
        return OperationResult(ok=ok, state=coordinator.state())

    @app.post("/debug/logs/clear", response_model=OperationResult)
    async def clear_logs(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> OperationResult:
        coordinator.clear_logs()
        return OperationResult(ok=True, state=coordinator.state())

    @app.post("/debug/error/clear", response_model=OperationResult)
    async def clear_error(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> OperationResult:
        coordinator.clear_error()
        return OperationResult(ok=True, state=coordinator.state())

    @app.post("/debug/permission/check", response_model=PermissionResult)
    async def check_permission(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> PermissionResult:
        return PermissionResult(permission=await coordinator.check_permission())

    @app.post("/debug/permission/request", response_model=PermissionResult)
    async def request_permission(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> PermissionResult:
        return PermissionResult(permission=await coordinator.request_permission())

    @app.post("/debug/permission/settings", status_code=202)
    async def open_permission_settings(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> dict[str, str]:
        await coordinator.open_permission_settings()
        return {"status": "requested"}

    @app.post("/debug/files/open", status_code=202)
    async def open_file(
        body: OpenFileRequest, coordinator: DebugCoordinator = Depends(require_available)
    ) -> dict[str, str]:
        await coordinator.open_file(body.path)
        return {"status": "requested"}

    @app.post("/debug/output-dir/open", status_code=202)
    async def open_output_dir(
        coordinator: DebugCoordinator = Depends(require_available),
    ) -> dict[str, str]:
        await coordinator.open_output_dir()
        return {"status": "requested"}

    return app
