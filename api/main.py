"""
Retail POS API - Main Application.

FastAPI application exposing the sale and payment settlement engine.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import register_exception_handlers
from api.routers import payments, reports, sales
from config.logging import configure_logging
from config.settings import Settings, load_settings
from services.engine import SettlementEngine, build_engine

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[SettlementEngine] = None) -> FastAPI:
    """
    Build the application.

    The engine (repositories and services) is constructed exactly once here
    unless one is injected, e.g. by tests.
    """

    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Retail POS API",
        description="Stock-backed sales, invoices and payment settlement for a retail counter",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "retail-pos-api",
            "store": settings.store_backend,
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Retail POS API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    app.include_router(sales.router, prefix="/api", tags=["Sales"])
    app.include_router(payments.router, prefix="/api", tags=["Payments"])
    app.include_router(reports.router, prefix="/api", tags=["Reports"])

    logger.info("Retail POS API %s ready (store: %s)", __version__, settings.store_backend)
    return app


app = create_app()
