"""
Offer search backend: FastAPI application.

Wires settings, provider adapters, the catalog store and the search service
onto ``app.state`` at startup.
"""
import os
from datetime import datetime, timezone
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)

from config import Settings
from database import async_session_factory, engine, init_db
from exceptions import PriceCompareError
from observability import metrics_registry, setup_logging
from observability.logging import get_correlation_id, get_logger
from observability.middleware import ObservabilityMiddleware
from observability.sentry_config import init_sentry
from providers import build_adapters
from routes.health import router as health_router
from routes.search import router as search_router
from search.service import SearchService

setup_logging()
init_sentry()
logger = get_logger(__name__)

app = FastAPI(
    title="Offer Search Backend",
    description="Product offer search with on-demand provider enrichment",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

app.include_router(search_router)
app.include_router(health_router)


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(PriceCompareError)
async def price_compare_error_handler(request: Request, exc: PriceCompareError):
    logger.warning(f"[API] {type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Logs the full traceback and returns a safe error message to the client.
    """
    error_id = f"ERR-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}-{id(exc)}"
    logger.exception(
        f"[ERROR {error_id}] Unhandled exception on {request.method} {request.url.path}",
        extra={"error_id": error_id, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "error_id": error_id,
            "correlation_id": get_correlation_id(),
            "message": "An unexpected error occurred. Please try again.",
        },
    )


@app.on_event("startup")
async def startup_event():
    """Build the search pipeline once per process."""
    settings = Settings.from_env()
    logger.info(f"Offer search backend starting (environment={os.getenv('ENVIRONMENT', 'development')})")

    if os.getenv("DB_CREATE_TABLES", "true").lower() == "true":
        await init_db()

    client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds, follow_redirects=True)
    adapters = build_adapters(settings, client=client)
    app.state.http_client = client
    app.state.engine = engine
    app.state.settings = settings
    app.state.search_service = SearchService.from_settings(settings, async_session_factory, adapters)

    enabled = [a.name for a in adapters if a.enabled]
    logger.info(f"Search providers enabled: {enabled}")


@app.on_event("shutdown")
async def shutdown_event():
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
    await engine.dispose()
    logger.info("Offer search backend shutting down")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
