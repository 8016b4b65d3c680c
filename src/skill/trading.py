"""Managed-wallet trade workflow and position summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.bot.notifier import SellNotice, TelegramNotifier
from src.server_api.client import EasyMemeClient
from src.server_api.exceptions import EasyMemeApiError, TradeRequestError
from src.server_api.models import AIPosition, TradeRequest, TradeType, normalize_amount_in

DEFAULT_USER_ID = "default"


@dataclass
class TradeParams:
    type: TradeType
    token_address: str | None = None
    token_symbol: str | None = None
    amount_in: str | float | None = None
    amount_out: str | None = None
    golden_dog_score: float | None = None
    decision_reason: str | None = None
    strategy_used: str | None = None
    profit_loss: float | None = None
    force: bool = False
    user_id: str | None = None


def resolve_user_id(client: EasyMemeClient, user_id: str | None = None) -> str:
    """Explicit user, else the client's configured user, else "default"."""
    return (user_id or "").strip() or client.user_id or DEFAULT_USER_ID


async def ensure_wallet(client: EasyMemeClient, user_id: str) -> None:
    """Create the managed wallet if the backend does not know the user yet."""
    try:
        await client.get_wallet_balance(user_id)
    except EasyMemeApiError as e:
        if e.status_code != 404:
            raise
        logger.info(f"[TRADE] No managed wallet for {user_id}, creating one")
        await client.create_wallet(user_id)


def find_position_by_symbol(positions: list[AIPosition], symbol: str) -> AIPosition | None:
    wanted = symbol.lower()
    for pos in positions:
        if (pos.token_symbol or "").lower() == wanted:
            return pos
    return None


async def execute_trade_workflow(
    client: EasyMemeClient,
    notifier: TelegramNotifier,
    params: TradeParams,
) -> Any:
    """Execute one AI trade with the user's managed wallet.

    The token address may be omitted when ``token_symbol`` matches an open
    position. SELL trades are announced through ``notifier``.
    """
    user_id = resolve_user_id(client, params.user_id)
    await ensure_wallet(client, user_id)

    token_address = (params.token_address or "").strip()
    if not token_address and params.token_symbol:
        match = find_position_by_symbol(await client.get_positions(user_id), params.token_symbol)
        if match is None or not match.token_address:
            raise TradeRequestError(f"tokenSymbol not found in positions: {params.token_symbol}")
        token_address = match.token_address
    if not token_address:
        raise TradeRequestError("tokenAddress is required")

    amount_in = normalize_amount_in(params.amount_in)
    request = TradeRequest(
        user_id=user_id,
        token_address=token_address,
        type=params.type,
        token_symbol=params.token_symbol or None,
        amount_in=amount_in,
        amount_out=params.amount_out or None,
        golden_dog_score=params.golden_dog_score,
        decision_reason=params.decision_reason or None,
        strategy_used=params.strategy_used or None,
        profit_loss=params.profit_loss,
        force=True if params.force else None,
    )
    result = await client.execute_trade(request)
    logger.info(
        f"[TRADE] {params.type} {params.token_symbol or token_address[:12]} "
        f"amount={amount_in} user={user_id}"
    )

    if params.type == "SELL":
        await notifier.notify_sell_trade(
            SellNotice(
                token_address=token_address,
                token_symbol=params.token_symbol or None,
                amount_in=amount_in,
            ),
            result,
        )
    return result


def format_positions_summary(positions: list[AIPosition]) -> list[str]:
    return [
        f"{pos.token_symbol or 'UNKNOWN'} | {pos.token_address} | "
        f"qty={pos.quantity or '0'} | cost={pos.cost_bnb or '0'} | "
        f"updated={pos.updated_at or 'unknown'}"
        for pos in positions
    ]
