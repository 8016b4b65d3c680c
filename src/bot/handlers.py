"""Telegram bot command handlers: user feedback and model reports."""

import html

from aiogram import Router
from aiogram.filters import BaseFilter, Command
from aiogram.types import Message
from loguru import logger

from src.bot.formatters import format_feedback_ack, format_performance, format_weights
from src.memory.exceptions import MemoryPersistError
from src.memory.models import FeedbackType
from src.memory.service import AdaptiveMemory

router = Router()

MAX_ADDRESS_LEN = 64

FEEDBACK_COMMANDS: dict[str, FeedbackType] = {
    "confirm": "CONFIRM_GOLDEN",
    "deny": "DENY_GOLDEN",
    "rug": "REPORT_RUG",
}


class AdminFilter(BaseFilter):
    """Only allow messages from the configured admin user."""

    async def __call__(self, message: Message) -> bool:
        from config.settings import settings

        admin_id = settings.telegram_admin_id
        if not admin_id:
            return True  # no admin configured = allow all (dev mode)
        return message.from_user is not None and message.from_user.id == admin_id


def parse_address_arg(text: str | None) -> str | None:
    """Token address from "/cmd <address>", None when missing."""
    args = (text or "").split(maxsplit=1)
    if len(args) < 2 or not args[1].strip():
        return None
    return args[1].strip().split()[0][:MAX_ADDRESS_LEN]


def parse_command(text: str | None) -> str:
    """Command name without slash or @botname suffix."""
    head = (text or "").split(maxsplit=1)[0] if text else ""
    return head.lstrip("/").split("@", 1)[0].lower()


@router.message(Command("start"))
async def cmd_start(message: Message) -> None:
    await message.answer(
        "<b>EasyMeme feedback bot</b>\n\n"
        "Commands:\n"
        "/confirm &lt;address&gt; - token really was a golden dog\n"
        "/deny &lt;address&gt; - token was not a golden dog\n"
        "/rug &lt;address&gt; - token rugged\n"
        "/weights - current learned weights\n"
        "/performance - rule accuracy (7d / 30d / all)",
        parse_mode="HTML",
    )


@router.message(Command("confirm", "deny", "rug"))
async def cmd_feedback(message: Message, adaptive_memory: AdaptiveMemory) -> None:
    """Record a user's verdict on a token as TELEGRAM feedback."""
    command = parse_command(message.text)
    address = parse_address_arg(message.text)
    if address is None:
        await message.answer(f"Usage: /{command} &lt;address&gt;", parse_mode="HTML")
        return
    if message.from_user is None:
        return

    user_id = f"telegram:{message.from_user.id}"
    try:
        result = await adaptive_memory.record_feedback(
            address,
            FEEDBACK_COMMANDS[command],
            user_id,
            "TELEGRAM",
        )
    except MemoryPersistError as e:
        logger.error(f"[BOT] {e}")
        await message.answer(f"Could not record feedback: {html.escape(str(e))}")
        return

    await message.answer(format_feedback_ack(result.feedback, result.weights), parse_mode="HTML")


@router.message(Command("weights"), AdminFilter())
async def cmd_weights(message: Message, adaptive_memory: AdaptiveMemory) -> None:
    weights = await adaptive_memory.get_weights()
    await message.answer(format_weights(weights), parse_mode="HTML")


@router.message(Command("performance"), AdminFilter())
async def cmd_performance(message: Message, adaptive_memory: AdaptiveMemory) -> None:
    windows = await adaptive_memory.get_performance_report()
    await message.answer(format_performance(windows), parse_mode="HTML")
