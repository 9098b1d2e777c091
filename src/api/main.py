"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from src.adapters.http import BackendClient
from src.adapters.session import InMemorySessionStore
from src.api.dependencies import build_lifecycle_manager, build_wizard
from src.api.v1 import request_validation_handler
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.payment import PaymentOutcomeResolver

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Onboarding API v1 - Register, pay and manage subscriptions",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Opens the session store and the backend client on startup
    - Wires the wizard and the lifecycle manager
    - Tears the wizard down (dropping pending credentials) on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")

    store = InMemorySessionStore()
    store.open()

    logger.info("Connecting to backend at %s", settings.backend_url)
    backend = BackendClient(settings.backend_url, store, timeout=settings.request_timeout_seconds)
    resolver = PaymentOutcomeResolver(gateway=backend, store=store)

    # Store collaborators in app state for dependency injection
    app.state.session_store = store
    app.state.backend = backend
    app.state.resolver = resolver
    app.state.wizard = build_wizard(settings, backend, resolver, store)
    app.state.lifecycle = build_lifecycle_manager(settings, backend)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.wizard.close()
    await backend.aclose()
    store.close()
    logger.info("Session store closed")


app = FastAPI(
    title="onboarding",
    description="Self-service registration, checkout return handling and subscription lifecycle",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")
app.add_exception_handler(RequestValidationError, request_validation_handler)


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint.

    Returns 200 OK while the session store is open.
    """
    store = request.app.state.session_store
    return {"status": "healthy" if store.is_open else "closing"}
