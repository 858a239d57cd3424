"""
Dashboard service entry point.

This module initializes and runs the FastAPI triage console using Uvicorn.

The service:
- Runs on 127.0.0.1:8050 by default
- Provides REST API for the anomaly list, mode selection and health
- Owns one feed controller for the lifetime of the process

Usage:
    python -m services.dashboard.main

    Or with uvicorn directly:
    uvicorn services.dashboard.app:create_app --factory --port 8050

Environment Variables:
    CONFIG_PATH: Path of the YAML configuration file
    BACKEND_URL: Analysis backend base URL
    LOG_LEVEL: Logging level (default: INFO)
    DASHBOARD_PORT: Port to run the service on (default: 8050)
    DASHBOARD_HOST: Host to bind to (default: 127.0.0.1)
"""

import logging
import sys
from typing import Optional

import structlog
import uvicorn

from flightwatch import __version__
from flightwatch.config import LogFormat, LoggingConfig, load_config


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structured logging for the console.

    Args:
        config: Logging settings (default: JSON at INFO).
    """
    config = config or LoggingConfig()

    if config.format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, config.level.value),
    )

    # Reduce noise from uvicorn and aiohttp access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def main() -> None:
    """
    Main entry point for the dashboard service.

    Loads configuration, configures logging and starts the Uvicorn server
    with the FastAPI application.
    """
    config = load_config()
    setup_logging(config.logging)

    logger = structlog.get_logger(__name__)
    logger.info(
        "dashboard_service_starting",
        version=__version__,
        python_version=sys.version,
        backend_url=config.backend.base_url,
    )

    from services.dashboard.app import create_app

    # Run uvicorn
    uvicorn.run(
        create_app(config=config),
        host=config.dashboard.host,
        port=config.dashboard.port,
        log_level=config.logging.level.value.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
