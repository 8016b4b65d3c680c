"""Shared test fixtures."""

from pathlib import Path

import pytest

from src.memory.service import AdaptiveMemory
from src.memory.store import JsonFileMemoryStore


@pytest.fixture
def memory_path(tmp_path: Path) -> Path:
    return tmp_path / "easymeme" / "memory.json"


@pytest.fixture
def file_store(memory_path: Path) -> JsonFileMemoryStore:
    return JsonFileMemoryStore(memory_path)


@pytest.fixture
def memory(file_store: JsonFileMemoryStore) -> AdaptiveMemory:
    """AdaptiveMemory over a fresh JSON file in tmp_path."""
    return AdaptiveMemory(file_store, max_write_retries=2, default_user_reputation=30.0)


def _make_token(**overrides) -> dict:
    token = {
        "address": "0xabc0000000000000000000000000000000000001",
        "symbol": "DOGE2",
        "goplus": {
            "is_honeypot": "0",
            "buy_tax": "0.01",
            "sell_tax": "0.02",
            "is_mintable": "0",
            "can_take_back_ownership": "0",
            "is_proxy": "0",
        },
        "dexscreener": {
            "priceChange": {"h1": 25},
            "txns": {"h1": {"buys": 40, "sells": 12}},
            "liquidity": {"usd": 20000},
        },
        "holderDistribution": {"top10Share": 0.35},
    }
    token.update(overrides)
    return token


@pytest.fixture
def make_token():
    """Factory for a pending token payload: SAFE, good momentum, golden dog."""
    return _make_token
