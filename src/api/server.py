"""API server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from src.bot.notifier import TelegramNotifier
from src.memory.service import AdaptiveMemory
from src.server_api.client import EasyMemeClient


async def run_api_server(
    memory: AdaptiveMemory,
    client: EasyMemeClient | None = None,
    notifier: TelegramNotifier | None = None,
) -> None:
    """Start uvicorn serving the FastAPI app.

    Designed to run as an asyncio task alongside the analysis worker.
    Uses ``uvicorn.Server.serve()`` which is fully async.
    """
    from src.api.app import create_app

    app = create_app(memory, client, notifier)
    config = uvicorn.Config(
        app=app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"[API] Starting on http://0.0.0.0:{settings.api_port}")
    await server.serve()
