"""Telegram bot lifecycle: aiogram 3.x polling mode.

Starts the feedback bot in polling mode as an asyncio task alongside the
worker. Only runs if telegram_bot_token is configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from aiogram import Bot, Dispatcher

    from src.memory.service import AdaptiveMemory

_bot_instance: Bot | None = None
_dp_instance: Dispatcher | None = None


def get_bot() -> Bot:
    """Get or create the aiogram Bot singleton."""
    global _bot_instance
    if _bot_instance is None:
        from aiogram import Bot

        from config.settings import settings

        token = settings.telegram_bot_token
        if not token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN not configured")
        _bot_instance = Bot(token=token)
    return _bot_instance


def get_dispatcher(memory: AdaptiveMemory) -> Dispatcher:
    """Get or create the Dispatcher singleton with handlers registered.

    ``memory`` is injected into handlers as ``adaptive_memory``.
    """
    global _dp_instance
    if _dp_instance is None:
        from aiogram import Dispatcher

        from src.bot.handlers import router

        _dp_instance = Dispatcher()
        _dp_instance.include_router(router)
    _dp_instance["adaptive_memory"] = memory
    return _dp_instance


async def run_bot(memory: AdaptiveMemory) -> None:
    """Start the Telegram bot in polling mode.

    Runs indefinitely as an asyncio task launched from main().
    """
    try:
        bot = get_bot()
        dp = get_dispatcher(memory)
        logger.info("[BOT] Starting Telegram bot (polling mode)")
        await dp.start_polling(bot, close_bot_session=False, handle_signals=False)
    except RuntimeError as e:
        logger.warning(f"[BOT] Cannot start: {e}")
    except Exception as e:
        logger.error(f"[BOT] Fatal error: {e}")


async def stop_bot() -> None:
    """Gracefully stop the bot."""
    global _bot_instance
    if _bot_instance:
        await _bot_instance.session.close()
        _bot_instance = None
