"""FastAPI application setup module."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from starlette.middleware.sessions import SessionMiddleware

from billing_dashboard.database.database import ConnectionPool
from billing_dashboard.endpoints.auth import router as auth_router
from billing_dashboard.endpoints.customers import router as customers_router
from billing_dashboard.endpoints.dashboard import router as dashboard_router
from billing_dashboard.endpoints.invoices import router as invoices_router
from billing_dashboard.services.auth_service import require_user
from billing_dashboard.services.cache import clear_cache as _clear_cache
from billing_dashboard.services.cache import get_cache_stats
from billing_dashboard.settings import Settings, settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. The connection pool is opened by the lifespan."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.pool = ConnectionPool.from_settings(app_settings)
        logger.info(
            "Connection pool ready (size=%d, overflow=%d)",
            app_settings.DB_POOL_SIZE,
            app_settings.DB_MAX_OVERFLOW,
        )
        try:
            yield
        finally:
            await app.state.pool.dispose()
            logger.info("Connection pool drained")

    app = FastAPI(
        title="Billing Dashboard API",
        description="Invoices, customers and revenue metrics",
        version="1.0.0",
        debug=app_settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.SECRET_KEY,
        session_cookie=app_settings.SESSION_COOKIE,
        same_site="lax",
    )

    # Include routers
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(invoices_router)
    app.include_router(customers_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.post("/cache/clear", tags=["admin"], dependencies=[Depends(require_user)])
    async def clear_cache():
        """Drop every cached page."""
        count = _clear_cache()
        return {"cleared": count, "message": f"Cleared {count} cached entries"}

    @app.get("/cache/stats", tags=["admin"], dependencies=[Depends(require_user)])
    async def cache_stats():
        """Get cache statistics for debugging."""
        return get_cache_stats()

    return app


app = create_app()
