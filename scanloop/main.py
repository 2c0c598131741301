"""
==============================================================================
Scanloop Barcode Scanner - Application Entry Point
==============================================================================

FastAPI application with:
- Server-side camera scan loop (OpenCV + pyzbar)
- Product lookup API backed by the JSON catalog
- WebSocket event stream for browser clients

Usage:
------
    # Development
    uvicorn scanloop.main:app --reload

    # Production
    uvicorn scanloop.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanloop.config import Settings, get_settings
from scanloop.core.exceptions import AcquisitionError, register_exception_handlers
from scanloop.api.router import api_router
from scanloop.websockets import ScannerEventHub, scanner_router
from scanloop.catalog.catalog import init_catalog
from scanloop.scanner import CaptureSource, DecoderAdapter, OpenCVCaptureSource, ScanController
from scanloop.services import (
    FeedbackGroup,
    LoggingPresenter,
    NotificationDispatcher,
    PresenterGroup,
    ProductLookupClient,
    TerminalFeedback,
)


# ============================================================================
# LOGGING SETUP
# ============================================================================

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Catalog loading and scanner wiring on startup
    - Scanner shutdown and lookup drain on exit
    - Middleware, router and exception handler setup

    Args:
        settings: Settings to use (defaults to get_settings())
        capture_source: Camera source override (defaults to OpenCV)
        decoder: Decoder override (defaults to pyzbar)
        lookup_transport: httpx transport override for the lookup client
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        capture_source: Optional[CaptureSource] = None,
        decoder: Optional[DecoderAdapter] = None,
        lookup_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the application."""
        self._settings = settings or get_settings()
        self._capture_source = capture_source
        self._decoder = decoder
        self._lookup_transport = lookup_transport
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Camera barcode scanning with product lookup",
            lifespan=self._lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        # Configure middleware
        self._configure_middleware(app)

        # Register exception handlers
        register_exception_handlers(app)

        # Register routers
        self._register_routers(app)

        # Register root endpoint
        self._register_root(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        # Startup
        await self._startup(app)
        yield
        # Shutdown
        await self._shutdown(app)

    async def _startup(self, app: FastAPI) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        # Load product catalog
        self._load_catalog()

        # Wire the scanner
        self._build_scanner(app)

        try:
            await app.state.controller.init(self._settings.scanner_config())
        except AcquisitionError as e:
            logger.error(f"❌ Auto-start failed, scanner stays stopped: {e}")

        logger.info("=" * 60)
        logger.info(f"✅ {self._settings.app_name} ready")
        logger.info(f"📍 Running on http://{self._settings.host}:{self._settings.port}")
        logger.info(f"📡 Scan events: ws://{self._settings.host}:{self._settings.port}/ws/scan")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    async def _shutdown(self, app: FastAPI) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        app.state.controller.stop()
        await app.state.dispatcher.wait_idle()
        await app.state.lookup_client.aclose()
        logger.info("✅ Shutdown complete")

    def _load_catalog(self) -> None:
        """Load product catalog."""
        try:
            products_path = self._settings.products_path
            if products_path.exists():
                catalog = init_catalog(products_path)
                logger.info(f"✅ Loaded {len(catalog.products)} products")
            else:
                logger.warning(f"⚠️ Products file not found: {products_path}")
        except Exception as e:
            logger.error(f"❌ Failed to load catalog: {e}")

    def _build_scanner(self, app: FastAPI) -> None:
        """Compose capture, decoder, dispatcher and controller on app.state."""
        config = self._settings.scanner_config()
        hub = ScannerEventHub()

        lookup_client = ProductLookupClient(
            self._settings.lookup_base_url,
            self._settings.lookup_path,
            self._settings.lookup_timeout_seconds,
            transport=self._lookup_transport,
        )

        feedback = hub
        if self._settings.terminal_bell:
            feedback = FeedbackGroup(hub, TerminalFeedback())

        dispatcher = NotificationDispatcher(
            config,
            lookup_client,
            PresenterGroup(LoggingPresenter(), hub),
            feedback,
            select_hook=hub.select,
        )

        capture_source = self._capture_source or OpenCVCaptureSource(
            self._settings.camera_index_for
        )

        app.state.event_hub = hub
        app.state.lookup_client = lookup_client
        app.state.dispatcher = dispatcher
        app.state.controller = ScanController(
            capture_source, self._decoder or DecoderAdapter(), dispatcher, config
        )

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API routers."""
        # REST API routes
        app.include_router(api_router)

        # WebSocket routes
        app.include_router(scanner_router)

    def _register_root(self, app: FastAPI) -> None:
        """Register root endpoint."""

        @app.get("/")
        async def root():
            """Service index."""
            return {
                "name": self._settings.app_name,
                "docs": "/docs",
                "health": "/api/v1/health",
                "websocket": "/ws/scan",
            }

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

# Create application instance
application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scanloop.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
