"""FastAPI dependency injection: memory service, backend client, notifier."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.bot.notifier import TelegramNotifier
from src.memory.service import AdaptiveMemory
from src.server_api.client import EasyMemeClient


def get_memory(request: Request) -> AdaptiveMemory:
    """Return the AdaptiveMemory bound to the app."""
    return request.app.state.memory


def get_client(request: Request) -> EasyMemeClient:
    """Return the backend client, 503 when the app was built without one."""
    client = request.app.state.client
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="EasyMeme backend client not configured",
        )
    return client


def get_notifier(request: Request) -> TelegramNotifier:
    """Return the notifier bound to the app (disabled unless configured)."""
    return request.app.state.notifier
