"""Tests for the endpoints backed by the EasyMeme server: trades, wallet, token data."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.server_api.exceptions import EasyMemeApiError
from src.server_api.models import AIPosition


@pytest.fixture
def backend():
    client = MagicMock()
    client.user_id = "cfg-user"
    client.get_wallet_balance = AsyncMock(return_value={"address": "0xwallet", "balance": "1.5"})
    client.create_wallet = AsyncMock()
    client.upsert_wallet_config = AsyncMock(return_value={"updated": True})
    client.get_positions = AsyncMock(return_value=[
        AIPosition(token_address="0xpepe", token_symbol="PEPE", quantity="100", cost_bnb="0.1"),
    ])
    client.execute_trade = AsyncMock(return_value={"data": {"tx_hash": "0xtx"}})
    client.get_analyzed_tokens = AsyncMock(return_value={"items": [{"address": "0x1"}], "total": 1})
    client.get_golden_dog_score_distribution = AsyncMock(return_value={"distribution": [{"bucket": 90, "count": 2}]})
    client.get_token_price_series = AsyncMock(return_value={"series": [{"priceUsd": 0.001}]})
    client.upsert_token_price_snapshot = AsyncMock(return_value={"stored": True})
    return client


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.notify_sell_trade = AsyncMock()
    return notifier


@pytest.fixture
def api(memory, backend, notifier):
    with TestClient(create_app(memory, backend, notifier)) as client:
        yield client


def test_sell_by_symbol(api, backend, notifier):
    resp = api.post("/api/v1/trades", json={"type": "SELL", "tokenSymbol": "pepe", "amountIn": "50%"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "result": {"data": {"tx_hash": "0xtx"}}}
    request = backend.execute_trade.await_args.args[0]
    assert request.user_id == "cfg-user"
    assert request.token_address == "0xpepe"
    assert request.amount_in == "0.5"
    notifier.notify_sell_trade.assert_awaited_once()


def test_trade_without_address_is_422(api, backend):
    resp = api.post("/api/v1/trades", json={"type": "BUY", "userId": "u1"})
    assert resp.status_code == 422
    assert resp.json() == {"detail": "tokenAddress is required"}
    backend.execute_trade.assert_not_awaited()


def test_trade_rejects_unknown_type(api):
    assert api.post("/api/v1/trades", json={"type": "HODL", "tokenAddress": "0x1"}).status_code == 422


def test_trade_without_backend(memory):
    with TestClient(create_app(memory)) as client:
        resp = client.post("/api/v1/trades", json={"type": "BUY", "tokenAddress": "0x1"})
    assert resp.status_code == 503


def test_positions_summary(api, backend):
    resp = api.get("/api/v1/positions", params={"userId": "u7"})
    assert resp.json() == {
        "ok": True,
        "positions": ["PEPE | 0xpepe | qty=100 | cost=0.1 | updated=unknown"],
        "count": 1,
    }
    backend.get_positions.assert_awaited_once_with("u7")


def test_positions_detailed(api, backend):
    body = api.get("/api/v1/positions", params={"format": "detailed"}).json()
    assert body["count"] == 1
    assert body["positions"][0]["token_address"] == "0xpepe"
    backend.get_positions.assert_awaited_once_with("cfg-user")


def test_wallet_info(api, backend):
    resp = api.get("/api/v1/wallet")
    assert resp.json() == {"ok": True, "result": {"address": "0xwallet", "balance": "1.5"}}
    backend.get_wallet_balance.assert_awaited_once_with("cfg-user")


def test_wallet_config(api, backend):
    resp = api.post(
        "/api/v1/wallet/config",
        json={"userId": "u2", "config": {"autoTrade": True, "maxPositionBnb": "0.2"}},
    )
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "result": {"updated": True}}
    backend.upsert_wallet_config.assert_awaited_once_with(
        "u2", {"autoTrade": True, "maxPositionBnb": "0.2"}
    )


def test_wallet_backend_error_is_502(api, backend):
    backend.get_wallet_balance.side_effect = EasyMemeApiError(503, "Service Unavailable")
    resp = api.get("/api/v1/wallet")
    assert resp.status_code == 502
    assert resp.json()["upstreamStatus"] == 503


def test_analyzed_tokens(api, backend):
    resp = api.get("/api/v1/analysis/analyzed", params={"days": 3, "pageSize": 20})
    assert resp.json() == {"ok": True, "result": {"items": [{"address": "0x1"}], "total": 1}}
    backend.get_analyzed_tokens.assert_awaited_once_with(days=3, page=1, page_size=20)


def test_analyzed_tokens_validates_range(api):
    assert api.get("/api/v1/analysis/analyzed", params={"days": 0}).status_code == 422


def test_score_distribution(api, backend):
    resp = api.get("/api/v1/analysis/score-distribution", params={"bucket": 5})
    assert resp.json() == {"distribution": [{"bucket": 90, "count": 2}]}
    backend.get_golden_dog_score_distribution.assert_awaited_once_with(days=7, bucket=5)


def test_price_series(api, backend):
    resp = api.get("/api/v1/analysis/0xabc/price-series", params={"from": "2026-01-01T00:00:00Z"})
    assert resp.json() == {"series": [{"priceUsd": 0.001}]}
    backend.get_token_price_series.assert_awaited_once_with(
        "0xabc", from_ts="2026-01-01T00:00:00Z", to_ts=None, limit=2000
    )


def test_price_snapshot(api, backend):
    resp = api.post(
        "/api/v1/analysis/0xabc/price-snapshots",
        json={"priceUsd": 0.0012, "liquidityUsd": 5000, "volume5mUsd": 120},
    )
    assert resp.json() == {"ok": True, "result": {"stored": True}}
    backend.upsert_token_price_snapshot.assert_awaited_once_with(
        "0xabc", 0.0012, ts=None, liquidity_usd=5000, volume_5m_usd=120
    )


def test_price_snapshot_rejects_negative_price(api):
    resp = api.post("/api/v1/analysis/0xabc/price-snapshots", json={"priceUsd": -1})
    assert resp.status_code == 422
