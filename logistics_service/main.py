"""
Logistics Service — FastAPI entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
import redis.asyncio as aioredis

from logistics_service.core.config import Settings, get_settings
from logistics_service.core.errors import register_exception_handlers
from logistics_service.core.redis_client import InventoryCache
from logistics_service.db.database import Database
from logistics_service.middleware.auth import JWTAuthMiddleware
from logistics_service.api import health, inventory, supplies, supply_outputs

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, redis_client: aioredis.Redis | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(settings.database_url, echo=settings.DEBUG)
        await db.init(settings.REFERENCE_DATA_PATH)
        if redis_client is not None:
            cache = InventoryCache(redis_client, settings.INVENTORY_CACHE_TTL_SECONDS)
        else:
            cache = InventoryCache.from_url(
                settings.redis_url,
                settings.INVENTORY_CACHE_TTL_SECONDS,
                connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
            )
        app.state.db = db
        app.state.cache = cache
        logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
        yield
        await cache.close()
        await db.dispose()

    app = FastAPI(
        title="Logistics Service",
        description="Brigade food supply workflow and processing-station inventory with FIFO-by-expiry outputs.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )
    app.state.settings = settings

    # CORS is added last so it wraps auth
    app.add_middleware(JWTAuthMiddleware, secret_key=settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    register_exception_handlers(app)

    app.include_router(supplies.router)
    app.include_router(supply_outputs.router)
    app.include_router(inventory.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}

    return app


app = create_app()
