import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.exceptions import HTTPException as StarletteHTTPException

from estate_shares.api.v1 import properties, users
from estate_shares.core.config import Settings, get_settings
from estate_shares.core.exceptions import EstateSharesError
from estate_shares.core.locks import KeyedLocks
from estate_shares.core.redis_client import create_redis_client
from estate_shares.db.database import create_engine, create_sessionmaker, create_tables
from estate_shares.middleware.request_id import RequestIDMiddleware
from estate_shares.services.property_cache import PropertyCache

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(settings: Optional[Settings] = None, redis: Optional[Redis] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings.database_url)
        await create_tables(engine)
        owns_redis = redis is None
        redis_client = create_redis_client(settings.redis_url) if owns_redis else redis

        app.state.settings = settings
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.property_cache = PropertyCache(redis_client, settings.cache_ttl_seconds)
        app.state.locks = KeyedLocks()
        logger.info(f"Storage ready, cache {'enabled' if redis_client is not None else 'disabled'}")
        try:
            yield
        finally:
            if owns_redis and redis_client is not None:
                await redis_client.aclose()
            await engine.dispose()

    app = FastAPI(title=settings.app_title, lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(EstateSharesError)
    async def handle_service_error(request: Request, exc: EstateSharesError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/", tags=["Health Check"])
    async def read_root():
        return {"status": "ok", "message": "Welcome to the Fractional Real Estate Ownership Service"}

    app.include_router(users.router)
    app.include_router(properties.router)
    return app
