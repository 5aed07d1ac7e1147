"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pitwall.assistant import InferenceError
from pitwall.session_actor import StoreError

from backend.api.dependencies import get_settings
from backend.api.routers import chat, strategy, telemetry

logger = logging.getLogger(__name__)


async def _create_tables() -> None:
    """Create the session_state table when the database store is in use."""
    from backend.api.db.database import async_engine
    from backend.api.db.models import Base

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Session state tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    if settings.store_backend == "database":
        await _create_tables()

    yield

    if settings.store_backend == "database":
        from backend.api.db.database import async_engine

        await async_engine.dispose()


load_dotenv()  # Populate os.environ from .env before reading settings
settings = get_settings()

app = FastAPI(
    title="Pitwall API",
    description="Race-team telemetry statistics, strategy simulation and assistant chat",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)


# -- Exception handlers --------------------------------------------------------


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs the full traceback server-side but returns a safe generic message
    to the client (no internal details leaked).
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Return 422 for ValueError (bad input data that passed validation)."""
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.exception_handler(InferenceError)
async def inference_error_handler(request: Request, exc: InferenceError) -> JSONResponse:
    """Return 503 when the assistant could not answer; the turn was not recorded."""
    logger.warning("Inference failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Return 503 when session state could not be read or written."""
    logger.warning("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
    )


# -- Middleware ----------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- Routers -----------------------------------------------------------------

app.include_router(telemetry.router, prefix="/api/telemetry", tags=["telemetry"])
app.include_router(strategy.router, prefix="/api/strategy", tags=["strategy"])
app.include_router(chat.router, prefix="/api", tags=["chat"])


# -- Health ------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "ok"}
