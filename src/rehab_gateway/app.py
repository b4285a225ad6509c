"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that builds the step service and chat registry once
  - CORS middleware
  - Global exception handlers (ValidationError → 422, ValueError → 404/409/400)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``rehab-gateway`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rehab_survey.client import HttpStepService
from rehab_survey.controller import SurveySessionController
from rehab_survey.errors import ValidationError
from rehab_survey.interfaces import StepService
from rehab_survey.messages import MessageRenderer
from rehab_survey.replay import SAMPLE_SCENARIO, ScriptedStepService

from rehab_gateway.config import GatewaySettings, load_settings
from rehab_gateway.errors import (
    generic_error_handler,
    validation_error_handler,
    value_error_handler,
)
from rehab_gateway.registry import ChatRegistry
from rehab_gateway.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Build the step service: scenario replay if configured, else HTTP
      2. Build the ``ChatRegistry`` with a controller factory
      3. Stash them on ``app.state`` for dependency injection

    Shutdown:
      1. Close the HTTP client's connection pool
    """
    settings: GatewaySettings = app.state.settings

    async with AsyncExitStack() as stack:
        # --- Step service ---
        service: StepService
        if settings.scenario:
            path = SAMPLE_SCENARIO if settings.scenario == "sample" else settings.scenario
            service = ScriptedStepService.from_yaml(path)
            logger.info("Replaying scenario %s", path)
        else:
            service = await stack.enter_async_context(
                HttpStepService(settings.api_base, timeout=settings.api_timeout)
            )
            logger.info("Using step service at %s", settings.api_base)

        # --- Registry ---
        renderer = MessageRenderer()

        def new_controller() -> SurveySessionController:
            return SurveySessionController(
                service, timing=settings.timing, renderer=renderer,
            )

        app.state.service = service
        app.state.registry = ChatRegistry(
            new_controller, ttl_seconds=settings.chat_ttl_seconds,
        )

        yield

    logger.info("Step service closed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: GatewaySettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Rehab Survey Gateway",
        description="Chat API driving the debt-rehabilitation interview",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    # ValidationError subclasses ValueError; the more specific handler wins
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — reports the service mode and open chats."""
        mode = "scenario" if settings.scenario else "http"
        return {"status": "ok", "service": mode, "chats": len(app.state.registry)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn rehab_gateway.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``rehab-gateway``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "rehab_gateway.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
