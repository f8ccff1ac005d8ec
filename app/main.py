"""FastAPI application entry point for the NOC Dashboard Service.

This service backs the network operations dashboard: admins sign in with a
signed session cookie, and a background client keeps a live table of router
metrics fed from the telemetry WebSocket upstream.

Run with: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, settings
from app.database import init_db
from app.routers.auth import router as auth_router
from app.routers.monitoring import router as monitoring_router
from app.services.metrics_store import RouterMetricsStore
from app.services.router_monitor import RouterMonitor
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and run the router monitor for the app's lifetime."""
    init_db()

    monitor: RouterMonitor = app.state.router_monitor
    if app.state.settings.ROUTER_MONITOR_ENABLED:
        monitor.start()
    try:
        yield
    finally:
        await monitor.stop()


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Build the application and wire configuration into its services."""
    if app_settings.uses_default_secret:
        logger.warning(
            "AUTH_SECRET is not set; session tokens are signed with the "
            "development default"
        )

    store = RouterMetricsStore(history_limit=app_settings.ROUTER_HISTORY_LIMIT)

    app = FastAPI(
        title=app_settings.APP_NAME,
        description=(
            "Admin API of the network operations dashboard. Provides cookie "
            "based admin sessions and a live view of router telemetry "
            "(CPU, memory, PPPoE sessions and interface traffic)."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.token_service = TokenService(
        secret=app_settings.AUTH_SECRET,
        default_ttl_ms=app_settings.AUTH_TOKEN_TTL_MS,
    )
    app.state.metrics_store = store
    app.state.router_monitor = RouterMonitor(
        url=app_settings.ROUTER_MONITOR_URL,
        store=store,
        reconnect_delay=app_settings.ROUTER_MONITOR_RECONNECT_DELAY,
    )

    app.include_router(auth_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["Health"])
    def health_check():
        """Health check endpoint to verify the service is running."""
        return {"status": "healthy", "service": app_settings.APP_NAME}

    return app


app = create_app()
