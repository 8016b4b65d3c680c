"""Health check."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.api.dependencies import get_memory
from src.memory.service import AdaptiveMemory

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    memory_ok: bool
    memory_error: str | None = None
    memory_revision: int
    backend_configured: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    memory: AdaptiveMemory = Depends(get_memory),
) -> HealthResponse:
    """Degraded when the stored memory document cannot be read or used."""
    state = await memory.load_state()
    error = memory.last_load_error

    from src.api.app import API_VERSION

    return HealthResponse(
        status="ok" if error is None else "degraded",
        version=API_VERSION,
        uptime_sec=int(time.monotonic() - request.app.state.started_at),
        memory_ok=error is None,
        memory_error=error,
        memory_revision=state.revision,
        backend_configured=request.app.state.client is not None,
    )
