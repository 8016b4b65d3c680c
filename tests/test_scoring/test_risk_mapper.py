"""Tests for the deterministic risk classifier."""

import pytest

from src.scoring.models import PendingToken
from src.scoring.risk_mapper import RECOMMEND_BUY, RECOMMEND_WAIT, classify


def test_clean_token_is_safe_golden_dog(make_token):
    result = classify(make_token())
    assert result.risk_score == 80
    assert result.risk_level == "SAFE"
    assert result.is_golden_dog is True
    assert result.recommendation == RECOMMEND_BUY
    assert result.golden_dog_score is None
    assert result.risk_factors.honeypot_risk == "LOW"
    assert result.risk_factors.tax_risk == "LOW"
    assert result.risk_factors.owner_risk == "LOW"
    assert result.risk_factors.concentration_risk == "LOW"


def test_honeypot_is_never_golden(make_token):
    token = make_token(goplus={"is_honeypot": True})
    result = classify(token)
    assert result.risk_factors.honeypot_risk == "HIGH"
    assert result.risk_score == 50
    assert result.risk_level == "WARNING"
    assert result.is_golden_dog is False
    assert result.recommendation == RECOMMEND_WAIT


def test_high_tax_warning_can_still_be_golden():
    token = {
        "address": "0xtax",
        "goplus": {
            "is_honeypot": "0",
            "buy_tax": "0.20",
            "sell_tax": "0.20",
            "is_mintable": "0",
            "is_proxy": "0",
            "can_take_back_ownership": "0",
        },
        "dexscreener": {
            "priceChange": {"h1": 15},
            "txns": {"h1": {"buys": 30, "sells": 10}},
            "liquidity": {"usd": 10000},
        },
        "holderDistribution": {"top10Share": 0.3},
    }
    result = classify(token)
    assert result.risk_factors.tax_risk == "HIGH"
    assert result.risk_factors.owner_risk == "LOW"
    assert result.risk_factors.concentration_risk == "LOW"
    assert result.risk_score == 50
    assert result.risk_level == "WARNING"
    assert result.is_golden_dog is True


def test_reasoning_text():
    token = {
        "goplus": {"is_honeypot": "0", "buy_tax": "0.2", "sell_tax": "0.2"},
        "dexscreener": {
            "priceChange": {"h1": 15},
            "txns": {"h1": {"buys": 30, "sells": 10}},
            "liquidity": {"usd": 10000},
        },
        "holderDistribution": {"top10Share": 0.3},
    }
    assert classify(token).reasoning == (
        "GoPlus honeypot=0, buyTax=0.2, sellTax=0.2. "
        "DEX h1 priceChange=15, txns buys/sells=30/10, liquidityUsd=10000. "
        "Holder top10Share=0.3"
    )


def test_empty_token_degrades_to_defaults():
    result = classify({})
    assert result.risk_score == 80
    assert result.risk_level == "SAFE"
    assert result.is_golden_dog is False  # no momentum
    assert result.reasoning == (
        "GoPlus honeypot=unknown, buyTax=unknown, sellTax=unknown. "
        "DEX h1 priceChange=0, txns buys/sells=0/0, liquidityUsd=0. "
        "Holder distribution unavailable"
    )


def test_malformed_sections_never_raise():
    result = classify({
        "goplus": "not-a-dict",
        "dexscreener": {"txns": ["bad"], "priceChange": {"h1": "abc"}},
        "holderDistribution": 42,
    })
    assert result.risk_level == "SAFE"
    assert "Holder distribution unavailable" in result.reasoning


@pytest.mark.parametrize(
    "buy_tax,sell_tax,expected",
    [
        ("0.05", "0.07", "LOW"),
        ("0.08", "0", "MEDIUM"),
        (0, 0.15, "HIGH"),
        (10, 0, "MEDIUM"),  # percent form: 10 -> 0.10
        (5, 3, "LOW"),
        (1, 0, "HIGH"),  # 1 is read as a fraction (100%)
    ],
)
def test_tax_risk(make_token, buy_tax, sell_tax, expected):
    token = make_token(goplus={"buy_tax": buy_tax, "sell_tax": sell_tax})
    assert classify(token).risk_factors.tax_risk == expected


@pytest.mark.parametrize(
    "goplus,expected",
    [
        ({"is_mintable": "1"}, "HIGH"),
        ({"can_take_back_ownership": "true"}, "HIGH"),
        ({"is_proxy": "yes"}, "MEDIUM"),
        ({"is_mintable": "1", "is_proxy": "1"}, "HIGH"),
        ({"is_proxy": "0"}, "LOW"),
    ],
)
def test_owner_risk(make_token, goplus, expected):
    assert classify(make_token(goplus=goplus)).risk_factors.owner_risk == expected


def test_concentration_from_top10_share(make_token):
    assert classify(make_token(holderDistribution={"top10Share": 0.8})).risk_factors.concentration_risk == "HIGH"
    assert classify(make_token(holderDistribution={"top10Share": "0.65"})).risk_factors.concentration_risk == "MEDIUM"


def test_concentration_from_sell_dump(make_token):
    token = make_token(dexscreener={
        "priceChange": {"h1": 30},
        "txns": {"h1": {"buys": 10, "sells": 25}},
        "liquidity": {"usd": 50000},
    })
    result = classify(token)
    assert result.risk_factors.concentration_risk == "MEDIUM"
    assert result.risk_score == 68
    assert result.risk_level == "WARNING"
    assert result.is_golden_dog is False  # sells > buys


def test_sell_dump_needs_twenty_sells(make_token):
    token = make_token(dexscreener={"txns": {"h1": {"buys": 5, "sells": 19}}})
    assert classify(token).risk_factors.concentration_risk == "LOW"


def test_holder_list_counts_as_present(make_token):
    result = classify(make_token(holderDistribution=[{"address": "0x1", "share": 0.9}]))
    assert result.risk_factors.concentration_risk == "LOW"
    assert "Holder top10Share=0" in result.reasoning


def test_score_clamped_at_zero(make_token):
    token = make_token(
        goplus={"is_honeypot": "1", "buy_tax": 0.5, "is_mintable": "1"},
        holderDistribution={"top10Share": 0.95},
    )
    result = classify(token)
    assert result.risk_score == 0
    assert result.risk_level == "DANGER"
    assert result.is_golden_dog is False


def test_danger_is_never_golden(make_token):
    token = make_token(goplus={"buy_tax": 0.3, "is_mintable": "1"})
    result = classify(token)
    assert result.risk_score == 20
    assert result.risk_level == "DANGER"
    assert result.is_golden_dog is False


@pytest.mark.parametrize(
    "dex",
    [
        {"priceChange": {"h1": 10}, "txns": {"h1": {"buys": 30, "sells": 10}}, "liquidity": {"usd": 10000}},
        {"priceChange": {"h1": 20}, "txns": {"h1": {"buys": 9, "sells": 10}}, "liquidity": {"usd": 10000}},
        {"priceChange": {"h1": 20}, "txns": {"h1": {"buys": 30, "sells": 10}}, "liquidity": {"usd": 4999}},
    ],
)
def test_weak_momentum_is_not_golden(make_token, dex):
    assert classify(make_token(dexscreener=dex)).is_golden_dog is False


def test_classify_is_pure(make_token):
    token = make_token(goplus={"is_proxy": "1", "buy_tax": "9"})
    first = classify(token)
    second = classify(token)
    assert first == second
    assert first.to_json_dict() == second.to_json_dict()


def test_classify_accepts_pending_token(make_token):
    raw = make_token()
    token = PendingToken.model_validate(raw)
    assert classify(token) == classify(raw)


def test_wire_format_is_camel_case(make_token):
    data = classify(make_token()).to_json_dict()
    assert set(data) == {
        "riskScore", "riskLevel", "isGoldenDog", "riskFactors", "reasoning", "recommendation",
    }
    assert set(data["riskFactors"]) == {
        "honeypotRisk", "taxRisk", "ownerRisk", "concentrationRisk",
    }
