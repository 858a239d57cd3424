"""
FastAPI application for the flight anomaly triage console.

This module creates and configures the FastAPI application with:
- CORS configuration for cross-origin requests
- Router registration for API endpoints
- Lifespan events that own the feed controller

The service runs on port 8050 by default and provides:
- REST API: /api/anomalies, /api/criteria, /api/state, /api/mode, /api/date,
  /api/rule, /api/rules, /api/external, /api/select, /api/refresh,
  /api/health

Note:
    The controller holds the only copy of the working set. Routes read it
    through FeedController.view() and change it only through the
    controller's transition methods.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from flightwatch import __version__
from flightwatch.config import AppConfig, load_config
from flightwatch.feed import FeedController, create_feed_controller

logger = structlog.get_logger(__name__)


class AppState:
    """
    Application state container for the feed controller.

    Holds the controller created during application startup and closed on
    shutdown, together with the configuration it was built from.
    """

    def __init__(self):
        self.controller: Optional[FeedController] = None
        self.config: Optional[AppConfig] = None
        self.start_time: datetime = datetime.now(timezone.utc)


# Global application state
app_state = AppState()


def get_controller() -> FeedController:
    """
    Get the running controller.

    Returns:
        FeedController: The controller.

    Raises:
        HTTPException: 503 if the service has not finished starting.
    """
    if app_state.controller is None:
        raise HTTPException(status_code=503, detail="Feed controller not running")
    return app_state.controller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Manage application lifespan events.

    Builds and starts the feed controller on startup and closes it on
    shutdown, which stops the realtime poller, cancels the live search and
    releases the backend session and alert sink.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control flow returns to the application.
    """
    logger.info("dashboard_starting")

    config = app_state.config or load_config()
    app_state.config = config

    controller = app_state.controller or create_feed_controller(config)
    app_state.controller = controller
    controller.start()

    app_state.start_time = datetime.now(timezone.utc)
    logger.info(
        "dashboard_ready",
        backend_url=config.backend.base_url,
        mode=controller.mode.value,
    )

    yield

    logger.info("dashboard_shutting_down")

    try:
        await controller.close()
    except Exception as e:
        logger.error("controller_close_error", error=str(e))

    app_state.controller = None
    logger.info("dashboard_shutdown_complete")


def create_app(
    config: Optional[AppConfig] = None,
    controller: Optional[FeedController] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Console configuration (default: loaded at startup).
        controller: Pre-built controller (default: built from config).

    Returns:
        FastAPI: Configured FastAPI application instance.

    Example:
        >>> app = create_app()
        >>> # Run with uvicorn
        >>> import uvicorn
        >>> uvicorn.run(app, host="127.0.0.1", port=8050)
    """
    if config is not None:
        app_state.config = config
    if controller is not None:
        app_state.controller = controller

    app = FastAPI(
        title="Flight Anomaly Triage Console",
        description="Mode-synchronized anomaly feed with realtime alerting",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    from services.dashboard.api.feed import router as feed_router
    from services.dashboard.api.mode import router as mode_router
    from services.dashboard.api.health import router as health_router

    app.include_router(feed_router, prefix="/api", tags=["Feed"])
    app.include_router(mode_router, prefix="/api", tags=["Mode"])
    app.include_router(health_router, prefix="/api", tags=["Health"])

    logger.info("fastapi_app_created")

    return app
