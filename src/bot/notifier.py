"""Telegram notifications for golden dog verdicts and executed sells.

Sends only when the notify channel is "telegram"/"tg" and both a chat id and
a bot token are configured. Send failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

if TYPE_CHECKING:
    from config.settings import Settings

TELEGRAM_API = "https://api.telegram.org"
BSCSCAN_TX_URL = "https://bscscan.com/tx/"
RETRY_DELAY_SEC = 2.0


@dataclass
class GoldenDogNotice:
    token_address: str
    token_symbol: str | None = None
    golden_dog_score: float | None = None
    risk_score: float | None = None
    decision_reason: str | None = None


@dataclass
class SellNotice:
    token_address: str
    token_symbol: str | None = None
    amount_in: str | None = None
    tx_hash: str | None = None


def normalize_chat_id(raw: str) -> str:
    value = raw.strip()
    for prefix in ("telegram:", "tg:"):
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def extract_tx_hash(result: Any) -> str | None:
    """Pull ``tx_hash`` from a trade response (``data.tx_hash`` or top level)."""
    if not isinstance(result, Mapping):
        return None
    data = result.get("data")
    tx_hash = data.get("tx_hash") if isinstance(data, Mapping) else None
    if tx_hash is None:
        tx_hash = result.get("tx_hash")
    return tx_hash if isinstance(tx_hash, str) and tx_hash else None


def format_golden_dog_message(notice: GoldenDogNotice) -> str:
    lines = [
        "EasyMeme Golden Dog detected",
        f"Token: {notice.token_symbol}" if notice.token_symbol else "Token: (unknown)",
        f"Address: {notice.token_address}",
        (
            f"GoldenDogScore: {notice.golden_dog_score:.2f}"
            if notice.golden_dog_score is not None
            else "GoldenDogScore: (unknown)"
        ),
        (
            f"RiskScore: {notice.risk_score:.2f}"
            if notice.risk_score is not None
            else "RiskScore: (unknown)"
        ),
        f"Decision: {notice.decision_reason}" if notice.decision_reason else "Decision: (none)",
    ]
    return "\n".join(lines)


def format_sell_message(notice: SellNotice) -> str:
    lines = [
        "EasyMeme SELL executed",
        f"Token: {notice.token_symbol}" if notice.token_symbol else "Token: (unknown)",
        f"Address: {notice.token_address}",
        f"AmountIn: {notice.amount_in}" if notice.amount_in else "AmountIn: (unknown)",
    ]
    if notice.tx_hash:
        lines.append(f"Tx: {notice.tx_hash}")
        lines.append(f"BscScan: {BSCSCAN_TX_URL}{notice.tx_hash}")
    return "\n".join(lines)


class TelegramNotifier:
    """Plain-text Telegram sender with one retry."""

    def __init__(self, *, channel: str = "", chat_id: str = "", bot_token: str = "") -> None:
        self._channel = channel.strip().lower()
        self._chat_id = normalize_chat_id(chat_id) if chat_id else ""
        self._bot_token = bot_token.strip()
        self._http: httpx.AsyncClient | None = None
        self._total_sent = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> TelegramNotifier:
        return cls(
            channel=settings.easymeme_notify_channel,
            chat_id=settings.easymeme_notify_to,
            bot_token=settings.notify_token,
        )

    @property
    def enabled(self) -> bool:
        return self._channel in ("telegram", "tg") and bool(self._chat_id) and bool(self._bot_token)

    @property
    def total_sent(self) -> int:
        return self._total_sent

    async def notify_golden_dog(self, notice: GoldenDogNotice) -> None:
        logger.info(
            f"[NOTIFY] Golden dog {notice.token_symbol or notice.token_address[:12]} "
            f"score={notice.golden_dog_score}"
        )
        await self._send(format_golden_dog_message(notice))

    async def notify_sell_trade(self, notice: SellNotice, result: Any = None) -> None:
        if not notice.tx_hash:
            notice = SellNotice(
                token_address=notice.token_address,
                token_symbol=notice.token_symbol,
                amount_in=notice.amount_in,
                tx_hash=extract_tx_hash(result),
            )
        await self._send(format_sell_message(notice))

    async def _send(self, text: str) -> None:
        if not self.enabled:
            return

        url = f"{TELEGRAM_API}/bot{self._bot_token}/sendMessage"
        last_err: Exception | None = None
        for attempt in range(2):
            try:
                if not self._http:
                    self._http = httpx.AsyncClient(timeout=10)
                resp = await self._http.post(
                    url,
                    json={
                        "chat_id": self._chat_id,
                        "text": text,
                        "disable_web_page_preview": True,
                    },
                )
                if resp.status_code == 200:
                    self._total_sent += 1
                    return
                last_err = Exception(f"HTTP {resp.status_code}: {resp.text[:200]}")
            except httpx.HTTPError as e:
                last_err = e
            if attempt == 0:
                await asyncio.sleep(RETRY_DELAY_SEC)

        logger.warning(f"[NOTIFY] Telegram send failed after 2 attempts: {last_err}")

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
