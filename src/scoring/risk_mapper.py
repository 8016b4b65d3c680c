"""Deterministic risk classification from raw token signals.

Maps GoPlus contract-safety fields, DexScreener h1 activity and holder
concentration into four risk factors, a 0-100 risk score and a golden dog
verdict. Pure function: no I/O, never raises, missing or malformed values
degrade to safe defaults.

Scoring breakdown:
- Start at 80
- Each HIGH factor: -30
- Each MEDIUM factor: -12
- Clamp to 0-100; SAFE >= 70, WARNING >= 45, else DANGER
"""

from collections.abc import Mapping
from typing import Any

from src.scoring.coerce import as_mapping, read_nested, to_bool, to_number
from src.scoring.models import (
    PendingToken,
    RiskFactors,
    RiskLevel,
    RiskVerdict,
    TokenRiskAnalysis,
)

BASE_SCORE = 80
HIGH_FACTOR_PENALTY = 30
MEDIUM_FACTOR_PENALTY = 12

RECOMMEND_BUY = "Momentum and risk profile are acceptable for a small, controlled position."
RECOMMEND_WAIT = (
    "Do not auto-buy yet; wait for stronger momentum or better ownership/risk signals."
)


def classify(token: Mapping[str, Any] | PendingToken) -> TokenRiskAnalysis:
    """Classify a pending token. ``goldenDogScore`` is left unset."""
    if isinstance(token, PendingToken):
        token = token.model_dump(by_alias=True)
    token = as_mapping(token)

    goplus = as_mapping(token.get("goplus"))
    dexscreener = as_mapping(token.get("dexscreener"))
    holders_raw = token.get("holderDistribution")
    # Lists count as "present" but carry no top10Share
    holder_distribution = holders_raw if isinstance(holders_raw, (Mapping, list)) else None

    honeypot_risk: RiskLevel = "HIGH" if to_bool(goplus.get("is_honeypot")) else "LOW"
    risk_factors = RiskFactors(
        honeypot_risk=honeypot_risk,
        tax_risk=_classify_tax_risk(
            to_number(goplus.get("buy_tax")), to_number(goplus.get("sell_tax"))
        ),
        owner_risk=_classify_owner_risk(goplus),
        concentration_risk=_classify_concentration_risk(holder_distribution, dexscreener),
    )

    risk_score = _score_from_factors(risk_factors)
    risk_level = _classify_risk_level(risk_score)

    price_h1 = to_number(read_nested(dexscreener, ["priceChange", "h1"]))
    buys_h1 = to_number(read_nested(dexscreener, ["txns", "h1", "buys"]))
    sells_h1 = to_number(read_nested(dexscreener, ["txns", "h1", "sells"]))
    liquidity_usd = to_number(read_nested(dexscreener, ["liquidity", "usd"]))

    momentum_good = price_h1 > 10 and buys_h1 >= sells_h1 and liquidity_usd >= 5000
    is_golden_dog = risk_level != "DANGER" and honeypot_risk != "HIGH" and momentum_good

    if holder_distribution is not None:
        top10 = to_number(as_mapping(holder_distribution).get("top10Share"))
        holder_fragment = f"Holder top10Share={_fmt(top10)}"
    else:
        holder_fragment = "Holder distribution unavailable"

    reasoning = ". ".join([
        f"GoPlus honeypot={_display(goplus.get('is_honeypot'))}, "
        f"buyTax={_display(goplus.get('buy_tax'))}, "
        f"sellTax={_display(goplus.get('sell_tax'))}",
        f"DEX h1 priceChange={_fmt(price_h1)}, "
        f"txns buys/sells={_fmt(buys_h1)}/{_fmt(sells_h1)}, "
        f"liquidityUsd={_fmt(liquidity_usd)}",
        holder_fragment,
    ])

    return TokenRiskAnalysis(
        risk_score=risk_score,
        risk_level=risk_level,
        is_golden_dog=is_golden_dog,
        risk_factors=risk_factors,
        reasoning=reasoning,
        recommendation=RECOMMEND_BUY if is_golden_dog else RECOMMEND_WAIT,
    )


def _normalize_tax(tax: float) -> float:
    """Values <= 1 are fractions already, anything larger is a percentage."""
    if tax <= 1:
        return tax
    return tax / 100


def _classify_tax_risk(buy_tax: float, sell_tax: float) -> RiskLevel:
    max_tax = max(_normalize_tax(buy_tax), _normalize_tax(sell_tax))
    if max_tax >= 0.15:
        return "HIGH"
    if max_tax >= 0.08:
        return "MEDIUM"
    return "LOW"


def _classify_owner_risk(goplus: Mapping[str, Any]) -> RiskLevel:
    if to_bool(goplus.get("is_mintable")) or to_bool(goplus.get("can_take_back_ownership")):
        return "HIGH"
    if to_bool(goplus.get("is_proxy")):
        return "MEDIUM"
    return "LOW"


def _classify_concentration_risk(
    holder_distribution: Mapping[str, Any] | list | None,
    dexscreener: Mapping[str, Any],
) -> RiskLevel:
    top10_share = to_number(as_mapping(holder_distribution).get("top10Share"))
    if top10_share >= 0.8:
        return "HIGH"
    if top10_share >= 0.6:
        return "MEDIUM"

    # Sell-side dump in the last hour reads as distribution by insiders
    buys_h1 = to_number(read_nested(dexscreener, ["txns", "h1", "buys"]))
    sells_h1 = to_number(read_nested(dexscreener, ["txns", "h1", "sells"]))
    if sells_h1 > buys_h1 * 2 and sells_h1 >= 20:
        return "MEDIUM"
    return "LOW"


def _score_from_factors(risk_factors: RiskFactors) -> int:
    score = BASE_SCORE
    for _name, level in risk_factors.levels():
        if level == "HIGH":
            score -= HIGH_FACTOR_PENALTY
        elif level == "MEDIUM":
            score -= MEDIUM_FACTOR_PENALTY
    return max(0, min(100, score))


def _classify_risk_level(risk_score: float) -> RiskVerdict:
    if risk_score >= 70:
        return "SAFE"
    if risk_score >= 45:
        return "WARNING"
    return "DANGER"


def _display(value: Any) -> str:
    """Render a raw provider value for the reasoning text."""
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _fmt(value)
    return str(value)


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)
