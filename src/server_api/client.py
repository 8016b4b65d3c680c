"""Async client for the EasyMeme backend REST API.

Requests carry ``X-API-Key`` / ``X-User-Id`` when configured and, when an
HMAC secret is set, a signature over
``METHOD\\npath\\ntimestamp\\nnonce\\nbody`` in ``X-Signature``.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import time
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode

import httpx
from loguru import logger

from src.scoring.models import PendingToken, TokenRiskAnalysis
from src.server_api.exceptions import EasyMemeApiError
from src.server_api.models import (
    AIPosition,
    TradeRequest,
    normalize_token_list,
    unwrap_list,
)
from src.server_api.rate_limiter import RateLimiter

if TYPE_CHECKING:
    from config.settings import Settings

DEFAULT_SERVER_URL = "http://localhost:8080"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


def sign_request(
    secret: str,
    method: str,
    path: str,
    body: str,
    *,
    timestamp: str | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """HMAC-SHA256 signature headers, empty when no secret is configured."""
    if not secret:
        return {}
    timestamp = timestamp or str(int(time.time()))
    nonce = nonce or str(uuid.uuid4())
    payload = f"{method}\n{path}\n{timestamp}\n{nonce}\n{body}"
    signature = hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
    return {"X-Timestamp": timestamp, "X-Nonce": nonce, "X-Signature": signature}


class EasyMemeClient:
    """Typed wrapper over the backend's token, wallet and trade endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        *,
        api_key: str = "",
        user_id: str = "",
        hmac_secret: str = "",
        max_rps: float = 5.0,
        timeout: float = 15.0,
    ) -> None:
        self._base_url = (base_url.strip() or DEFAULT_SERVER_URL).rstrip("/")
        self._api_key = api_key.strip()
        self._user_id = user_id.strip()
        self._hmac_secret = hmac_secret.strip()
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> EasyMemeClient:
        return cls(
            settings.easymeme_server_url,
            api_key=settings.easymeme_api_key,
            user_id=settings.easymeme_user_id,
            hmac_secret=settings.easymeme_api_hmac_secret,
            max_rps=settings.easymeme_api_max_rps,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def user_id(self) -> str:
        return self._user_id

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, method: str, path: str, body: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key
        if self._user_id:
            headers["X-User-Id"] = self._user_id
        headers.update(sign_request(self._hmac_secret, method, path, body))
        return headers

    async def _request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode the body (None if empty, text if not JSON).

        429 is retried for every method; timeouts only for GET, so a trade is
        never submitted twice.
        """
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else ""

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.request(
                    method,
                    path,
                    content=body or None,
                    headers=self._headers(method, path, body),
                )
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if method == "GET" and attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[SERVER_API] {type(e).__name__} on {path}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise

            if response.status_code == 429 and attempt < MAX_RETRIES:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.debug(f"[SERVER_API] 429 on {path}, retry in {delay}s")
                await asyncio.sleep(delay)
                continue

            text = response.text
            if not response.is_success:
                raise EasyMemeApiError(response.status_code, response.reason_phrase, text)
            if not text:
                return None
            try:
                return json.loads(text)
            except ValueError:
                return text

        raise AssertionError("unreachable")

    async def fetch_pending_tokens(self, limit: int = 10) -> list[PendingToken]:
        payload = await self._request_json("GET", f"/api/tokens/pending?limit={max(1, int(limit))}")
        tokens = normalize_token_list(payload)
        logger.debug(f"[SERVER_API] {len(tokens)} pending tokens")
        return tokens

    async def submit_analysis(self, token_address: str, analysis: TokenRiskAnalysis) -> Any:
        return await self._request_json(
            "POST",
            f"/api/tokens/{quote(token_address, safe='')}/analysis",
            analysis.to_json_dict(),
        )

    async def create_wallet(self, user_id: str) -> Any:
        return await self._request_json("POST", "/api/wallet/create", {"userId": user_id})

    async def get_wallet_balance(self, user_id: str) -> Any:
        return await self._request_json("GET", f"/api/wallet/balance?{urlencode({'userId': user_id})}")

    async def upsert_wallet_config(self, user_id: str, config: dict[str, Any]) -> Any:
        return await self._request_json(
            "POST", "/api/wallet/config", {"userId": user_id, "config": config}
        )

    async def execute_trade(self, request: TradeRequest) -> Any:
        return await self._request_json(
            "POST", "/api/wallet/execute-trade", request.to_json_dict()
        )

    async def get_positions(self, user_id: str) -> list[AIPosition]:
        payload = await self._request_json(
            "GET", f"/api/ai-positions?{urlencode({'userId': user_id})}"
        )
        return [AIPosition.model_validate(p) for p in unwrap_list(payload) if isinstance(p, dict)]

    async def get_analyzed_tokens(self, days: int = 7, page: int = 1, page_size: int = 50) -> Any:
        query = urlencode({"days": days, "page": page, "pageSize": page_size})
        return await self._request_json("GET", f"/api/tokens/analyzed?{query}")

    async def get_golden_dog_score_distribution(self, days: int = 7, bucket: int = 10) -> dict[str, Any]:
        query = urlencode({"days": days, "bucket": bucket})
        payload = await self._request_json(
            "GET", f"/api/tokens/stats/golden-dog-score-distribution?{query}"
        )
        result = dict(payload) if isinstance(payload, dict) else {}
        if not isinstance(result.get("distribution"), list):
            result["distribution"] = []
        return result

    async def get_token_price_series(
        self,
        token_address: str,
        *,
        from_ts: str | None = None,
        to_ts: str | None = None,
        limit: int = 2000,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if from_ts:
            params["from"] = from_ts
        if to_ts:
            params["to"] = to_ts
        if limit > 0:
            params["limit"] = limit
        path = f"/api/tokens/{quote(token_address, safe='')}/price-series"
        if params:
            path = f"{path}?{urlencode(params)}"
        payload = await self._request_json("GET", path)
        result = dict(payload) if isinstance(payload, dict) else {}
        if not isinstance(result.get("series"), list):
            result["series"] = []
        return result

    async def upsert_token_price_snapshot(
        self,
        token_address: str,
        price_usd: float,
        *,
        ts: str | None = None,
        liquidity_usd: float | None = None,
        volume_5m_usd: float | None = None,
    ) -> Any:
        payload = {
            "tokenAddress": token_address,
            "priceUsd": price_usd,
            "ts": ts,
            "liquidityUsd": liquidity_usd,
            "volume5mUsd": volume_5m_usd,
        }
        return await self._request_json(
            "POST",
            "/api/tokens/price-snapshots",
            {k: v for k, v in payload.items() if v is not None},
        )
