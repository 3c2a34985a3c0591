"""Movie Catalog API — FastAPI application entry point.

Serves /api/movies and /api/genres with a Redis cache-aside layer in front
of PostgreSQL. Interactive docs at /api-docs.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movie_api.catalog.routes import router as catalog_router
from movie_api.catalog.store import StoreError
from movie_api.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("movie_api")


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Movie API starting | port=%d", settings.port)

    from movie_api.catalog.service import CatalogService
    from movie_api.catalog.store import CatalogStore
    from movie_api.database import async_session_factory, close_db, init_db
    from movie_api.services.cache import CacheService
    from movie_api.services.cache_aside import CacheAside

    db_ok = await init_db()
    if not db_ok:
        raise RuntimeError("Database unavailable — refusing to start")

    # Redis is optional: without it entries live in process memory
    cache_service = CacheService(settings.redis_url)
    redis_ok = await cache_service.connect()
    logger.info("Redis: %s", "connected" if redis_ok else "unavailable (using in-memory fallback)")

    app.state.cache_service = cache_service
    app.state.catalog = CatalogService(
        CatalogStore(async_session_factory),
        CacheAside(cache_service, settings.cache_ttl_seconds),
    )

    yield

    await cache_service.disconnect()
    await close_db()
    logger.info("Movie API shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="Movie API",
    description="A movie and genre catalog with a Redis cache-aside layer",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api-docs",
    servers=[{"url": settings.server_url}] if settings.server_url else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(catalog_router)


# ═══════════════ ERRORS ═══════════════

@app.exception_handler(RequestValidationError)
async def invalid_payload(request: Request, exc: RequestValidationError):
    logger.info("Rejected payload | %s %s | errors=%d", request.method, request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": "Invalid data"})


@app.exception_handler(StoreError)
async def store_failure(request: Request, exc: StoreError):
    logger.error("Request failed | %s %s | %s", request.method, request.url.path, str(exc)[:300])
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health(request: Request):
    cache_service = getattr(request.app.state, "cache_service", None)
    return {
        "status": "ok",
        "cache": cache_service.backend if cache_service else "unconfigured",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("movie_api.main:app", host=settings.host, port=settings.port)
