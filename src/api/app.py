"""FastAPI application factory for the scoring and memory API."""

from __future__ import annotations

import os
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.api.middleware import SecurityHeadersMiddleware
from src.bot.notifier import TelegramNotifier
from src.memory.exceptions import MemoryPersistError
from src.memory.service import AdaptiveMemory
from src.server_api.client import EasyMemeClient
from src.server_api.exceptions import EasyMemeApiError, InvalidAnalysisError, TradeRequestError

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)

API_VERSION = "0.1.0"


async def _memory_persist_handler(request: Request, exc: MemoryPersistError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def _backend_error_handler(request: Request, exc: EasyMemeApiError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "upstreamStatus": exc.status_code},
    )


async def _bad_request_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False)},
    )


def create_app(
    memory: AdaptiveMemory,
    client: EasyMemeClient | None = None,
    notifier: TelegramNotifier | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    ``client`` is optional: without it the backend-facing endpoints answer
    503. Without ``notifier`` trades are not announced.
    """
    app = FastAPI(
        title="EasyMeme Scoring API",
        version=API_VERSION,
        docs_url="/api/docs" if os.getenv("EASYMEME_API_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("EASYMEME_API_DEBUG") else None,
    )
    app.state.memory = memory
    app.state.client = client
    app.state.notifier = notifier if notifier is not None else TelegramNotifier()
    app.state.started_at = time.monotonic()

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(MemoryPersistError, _memory_persist_handler)
    app.add_exception_handler(EasyMemeApiError, _backend_error_handler)
    app.add_exception_handler(InvalidAnalysisError, _bad_request_handler)
    app.add_exception_handler(TradeRequestError, _bad_request_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    from src.api.routers.analysis import router as analysis_router
    from src.api.routers.health import router as health_router
    from src.api.routers.memory import router as memory_router
    from src.api.routers.trading import router as trading_router

    app.include_router(health_router)
    app.include_router(analysis_router)
    app.include_router(memory_router)
    app.include_router(trading_router)

    return app
