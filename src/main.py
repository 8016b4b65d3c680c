"""Entry point for the EasyMeme scoring service."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from src.bot.bot import run_bot, stop_bot
from src.bot.notifier import TelegramNotifier
from src.memory.service import AdaptiveMemory
from src.server_api.client import EasyMemeClient
from src.skill.worker import run_worker
from src.utils.logger import setup_logger


async def main() -> None:
    setup_logger(level="INFO")
    logger.info("Starting EasyMeme scoring service...")

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    memory = AdaptiveMemory.from_settings(settings)
    client = EasyMemeClient.from_settings(settings)
    notifier = TelegramNotifier.from_settings(settings)
    logger.info(
        f"Memory backend={settings.memory_backend}, server={client.base_url}, "
        f"notify={'on' if notifier.enabled else 'off'}"
    )

    tasks: list[asyncio.Task] = []
    if settings.worker_enabled:
        tasks.append(asyncio.create_task(run_worker(
            client,
            memory,
            notifier,
            interval_sec=settings.worker_interval_sec,
            limit=settings.worker_batch_limit,
        )))
    if settings.api_enabled:
        from src.api.server import run_api_server

        tasks.append(asyncio.create_task(run_api_server(memory, client, notifier)))
    if settings.telegram_bot_token:
        tasks.append(asyncio.create_task(run_bot(memory)))

    if not tasks:
        logger.warning("Nothing to run: worker, API and bot are all disabled")

    # Wait for any service to finish or shutdown signal
    done, pending = await asyncio.wait(
        [*tasks, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    # Cancel remaining tasks
    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await stop_bot()
    await notifier.close()
    await client.close()
    await memory.close()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
