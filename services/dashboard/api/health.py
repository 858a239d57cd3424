"""
Health API endpoint for service status.

Provides:
    GET /api/health - Controller, poller and alert status
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class AlertHealthModel(BaseModel):
    """Model for alert throttle status."""

    enabled: bool = False
    sink: str = "unknown"
    cooldown_seconds: float = 0.0
    fired_count: int = 0
    suppressed_count: int = 0


class PollerHealthModel(BaseModel):
    """Model for realtime poller status."""

    running: bool = False
    watermark: Optional[int] = None
    ticks: int = 0


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = "unknown"
    mode: Optional[str] = None
    is_loading: bool = False
    last_error: Optional[str] = None
    poller: PollerHealthModel
    alerts: AlertHealthModel
    uptime_seconds: int = 0
    timestamp: str

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "mode": "realtime",
                "is_loading": False,
                "last_error": None,
                "poller": {"running": True, "watermark": 1753100000, "ticks": 12},
                "alerts": {
                    "enabled": True,
                    "sink": "TerminalBellSound",
                    "cooldown_seconds": 10.0,
                    "fired_count": 2,
                    "suppressed_count": 5,
                },
                "uptime_seconds": 60,
                "timestamp": "2025-07-21T12:34:57Z",
            }
        }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Get service health status",
    description="Reports the controller, realtime poller and alert throttle state.",
)
async def get_health() -> HealthResponse:
    """
    Get service health status.

    The service is "degraded" while the last search failed, "starting"
    before the controller exists.

    Returns:
        HealthResponse: Service health status.
    """
    from services.dashboard.app import app_state

    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H:%M:%SZ")
    uptime_seconds = int((now - app_state.start_time).total_seconds())

    controller = app_state.controller
    if controller is None:
        return HealthResponse(
            status="starting",
            poller=PollerHealthModel(),
            alerts=AlertHealthModel(),
            uptime_seconds=uptime_seconds,
            timestamp=timestamp,
        )

    poller = controller.poller
    throttle = controller.throttle

    status = "degraded" if controller.last_error else "healthy"

    return HealthResponse(
        status=status,
        mode=controller.mode.value,
        is_loading=controller.is_loading,
        last_error=controller.last_error,
        poller=PollerHealthModel(
            running=poller is not None and poller.is_running,
            watermark=poller.watermark if poller is not None else None,
            ticks=poller.ticks if poller is not None else 0,
        ),
        alerts=AlertHealthModel(
            enabled=throttle.enabled,
            sink=type(throttle.sound).__name__,
            cooldown_seconds=throttle.cooldown_seconds,
            fired_count=throttle.fired_count,
            suppressed_count=throttle.suppressed_count,
        ),
        uptime_seconds=uptime_seconds,
        timestamp=timestamp,
    )
