"""
==============================================================================
Nutriscan - Application Entry Point
==============================================================================

Routes:
-------
    /api/v1/health          liveness, readiness, configured lookup host
    /api/v1/products/{code} Open Food Facts lookup
    /api/v1/scan/*          one-shot image and manual scans
    /api/v1/contributions   product contributions
    /ws/scan                interactive acquisition session

Usage:
------
    uvicorn nutriscan.main:app --reload

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nutriscan import __version__
from nutriscan.api.router import api_router
from nutriscan.config import Settings, get_settings
from nutriscan.core.exceptions import register_exception_handlers
from nutriscan.db import get_database_manager, init_db
from nutriscan.websockets import scanner_router


settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


class Application:
    """Builds the FastAPI app and owns its startup/shutdown."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._app = FastAPI(
            title=settings.app_name,
            version=__version__,
            description="Barcode scanning and Open Food Facts nutrition lookup",
            lifespan=self._lifespan,
        )

        self._app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        register_exception_handlers(self._app)

        self._app.include_router(api_router)
        self._app.include_router(scanner_router)
        self._app.add_api_route("/", self.banner, methods=["GET"])

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info(f"🚀 Starting {self._settings.app_name} {__version__}")
        init_db()
        logger.info(f"🥫 Product database: {self._settings.off_base_url}")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        yield
        get_database_manager().dispose()
        logger.info("🛑 Shutdown complete")

    async def banner(self) -> dict:
        """Service name, version and docs location."""
        return {
            "name": self._settings.app_name,
            "version": __version__,
            "docs": "/docs",
        }

    @property
    def app(self) -> FastAPI:
        return self._app


application = Application(settings)
app = application.app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nutriscan.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
