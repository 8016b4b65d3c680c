"""Backend payload models and lenient normalisation of backend responses."""

import re
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel

from src.scoring.models import CamelModel, PendingToken, TokenRiskAnalysis
from src.server_api.exceptions import InvalidAnalysisError

TradeType = Literal["BUY", "SELL"]

REQUIRED_ANALYSIS_KEYS = (
    "riskScore",
    "riskLevel",
    "isGoldenDog",
    "riskFactors",
    "reasoning",
    "recommendation",
)

_PERCENT_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*%$")


class AIPosition(BaseModel):
    """Open AI-managed position (backend serves these in snake_case)."""

    user_id: str = ""
    token_address: str = ""
    token_symbol: str | None = None
    quantity: str | None = None
    cost_bnb: str | None = None
    updated_at: str | None = None

    model_config = {"extra": "ignore"}


class TradeRequest(CamelModel):
    user_id: str
    token_address: str
    type: TradeType
    token_symbol: str | None = None
    amount_in: str | None = None
    amount_out: str | None = None
    golden_dog_score: float | None = None
    decision_reason: str | None = None
    strategy_used: str | None = None
    profit_loss: float | None = None
    force: bool | None = None


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def normalize_token(raw: Any) -> PendingToken | None:
    """Keep only well-typed fields; drop entries without an address."""
    if not isinstance(raw, Mapping):
        return None
    address = raw.get("address")
    if not isinstance(address, str) or not address:
        return None
    liquidity = raw.get("liquidity")
    holders = raw.get("holderDistribution")
    return PendingToken(
        address=address,
        name=_str_or_none(raw.get("name")),
        symbol=_str_or_none(raw.get("symbol")),
        liquidity=(
            float(liquidity)
            if isinstance(liquidity, (int, float)) and not isinstance(liquidity, bool)
            else None
        ),
        creator_address=_str_or_none(raw.get("creatorAddress")),
        created_at=_str_or_none(raw.get("createdAt")),
        pair_address=_str_or_none(raw.get("pairAddress")),
        goplus=dict(raw["goplus"]) if isinstance(raw.get("goplus"), Mapping) else None,
        dexscreener=(
            dict(raw["dexscreener"]) if isinstance(raw.get("dexscreener"), Mapping) else None
        ),
        holder_distribution=holders if isinstance(holders, (dict, list)) else None,
    )


def unwrap_list(payload: Any) -> list[Any]:
    """Accept either a bare list or ``{"data": [...]}``."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


def normalize_token_list(payload: Any) -> list[PendingToken]:
    tokens = []
    for item in unwrap_list(payload):
        token = normalize_token(item)
        if token is not None:
            tokens.append(token)
    return tokens


def normalize_amount_in(amount: str | float | int | None) -> str | None:
    """Normalise a trade size: "ALL", a 0-1 ratio from "N%", or the raw amount."""
    if amount is None or isinstance(amount, bool):
        return None
    if isinstance(amount, (int, float)):
        return str(amount)
    trimmed = amount.strip()
    if not trimmed:
        return None
    if trimmed.upper() in ("ALL", "100%"):
        return "ALL"
    match = _PERCENT_RE.match(trimmed)
    if match:
        ratio = float(match.group(1)) / 100
        if 0 < ratio <= 1:
            return str(ratio)
    return trimmed


def validate_analysis(value: Any) -> TokenRiskAnalysis:
    """Check an externally produced analysis and parse it.

    Raises ``InvalidAnalysisError`` for missing keys and pydantic's
    ``ValidationError`` for out-of-range or unknown enum values.
    """
    if isinstance(value, TokenRiskAnalysis):
        return value
    if not isinstance(value, Mapping):
        raise InvalidAnalysisError("analysis must be an object")
    for key in REQUIRED_ANALYSIS_KEYS:
        if key not in value:
            raise InvalidAnalysisError(f"analysis.{key} is required")
    if not isinstance(value.get("riskFactors"), Mapping):
        raise InvalidAnalysisError("analysis.riskFactors is required")
    return TokenRiskAnalysis.model_validate(value)
