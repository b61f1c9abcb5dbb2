"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
from typing import Any

import logfire
from fastapi import FastAPI

from src.config import Settings, get_settings


def setup_logfire(app: FastAPI | None = None, settings: Settings | None = None) -> None:
    """
    Initialize and configure Pydantic Logfire for observability.

    Sets up:
    - FastAPI instrumentation (request/response tracing) when an app is given
    - Pydantic instrumentation (model validation logging)
    - Environment-aware configuration
    - Structured logging for non-local environments

    The CLI calls this without an app so scrape runs are traced the same way.
    """
    settings = settings or get_settings()

    logfire_config: dict[str, Any] = {
        "environment": settings.env,
        "service_name": "media-scraper",
        "send_to_logfire": "if-token-present",
    }

    # Add token if provided (for cloud logging)
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)

    if app is not None:
        logfire.instrument_fastapi(app)
    logfire.instrument_pydantic()

    configure_stdlib_logging(settings)


def configure_stdlib_logging(settings: Settings) -> None:
    """Configure Python logging based on environment."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.env == "local":
        # Local: Console formatting for development
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        # Production: Logfire handles structured formatting
        logging.basicConfig(level=level, format="%(message)s")

    # httpx logs every request at INFO; thousands of fetches drown everything else
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpcore").setLevel(max(level, logging.WARNING))
