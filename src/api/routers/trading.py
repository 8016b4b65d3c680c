"""Managed-wallet endpoints: trades, positions, wallet info and config."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from pydantic import Field

from src.api.app import limiter
from src.api.dependencies import get_client, get_notifier
from src.bot.notifier import TelegramNotifier
from src.scoring.models import CamelModel
from src.server_api.client import EasyMemeClient
from src.server_api.models import TradeType
from src.skill.trading import (
    TradeParams,
    execute_trade_workflow,
    format_positions_summary,
    resolve_user_id,
)

router = APIRouter(prefix="/api/v1", tags=["trading"])


class TradeBody(CamelModel):
    type: TradeType
    token_address: str | None = Field(default=None, max_length=128)
    token_symbol: str | None = Field(default=None, max_length=64)
    amount_in: str | float | None = None
    amount_out: str | None = None
    golden_dog_score: float | None = Field(default=None, ge=0, le=100)
    decision_reason: str | None = None
    strategy_used: str | None = None
    profit_loss: float | None = None
    force: bool = False
    user_id: str | None = Field(default=None, max_length=128)


class WalletConfigBody(CamelModel):
    user_id: str | None = Field(default=None, max_length=128)
    config: dict[str, Any] = Field(default_factory=dict)


@router.post("/trades")
@limiter.limit("10/minute")
async def execute_trade(
    request: Request,
    body: TradeBody,
    client: EasyMemeClient = Depends(get_client),
    notifier: TelegramNotifier = Depends(get_notifier),
) -> dict[str, Any]:
    """Execute a BUY or SELL with the user's managed wallet."""
    params = TradeParams(**body.model_dump())
    result = await execute_trade_workflow(client, notifier, params)
    return {"ok": True, "result": result}


@router.get("/positions")
async def get_positions(
    user_id: str | None = Query(default=None, alias="userId", max_length=128),
    format: Literal["summary", "detailed"] = "summary",
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    positions = await client.get_positions(resolve_user_id(client, user_id))
    if format == "detailed":
        return {
            "ok": True,
            "positions": [p.model_dump(exclude_none=True) for p in positions],
            "count": len(positions),
        }
    summary = format_positions_summary(positions)
    return {"ok": True, "positions": summary, "count": len(summary)}


@router.get("/wallet")
async def get_wallet_info(
    user_id: str | None = Query(default=None, alias="userId", max_length=128),
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    result = await client.get_wallet_balance(resolve_user_id(client, user_id))
    return {"ok": True, "result": result}


@router.post("/wallet/config")
async def upsert_wallet_config(
    body: WalletConfigBody,
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    result = await client.upsert_wallet_config(resolve_user_id(client, body.user_id), body.config)
    return {"ok": True, "result": result}
