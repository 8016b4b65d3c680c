"""Analysis endpoints: classify tokens, estimate scores, submit and list verdicts."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import Field

from src.api.dependencies import get_client, get_memory
from src.memory.service import AdaptiveMemory
from src.scoring.models import CamelModel, RiskFactors
from src.scoring.risk_mapper import classify
from src.server_api.client import EasyMemeClient
from src.server_api.models import validate_analysis

router = APIRouter(prefix="/api/v1/analysis", tags=["analysis"])


class ScoreRequest(CamelModel):
    risk_score: float = Field(ge=0, le=100)
    is_golden_dog: bool
    risk_factors: RiskFactors | None = None


@router.post("/classify")
async def classify_token(
    token: dict[str, Any] = Body(...),
    memory: AdaptiveMemory = Depends(get_memory),
) -> dict[str, Any]:
    """Classify a pending token; goldenDogScore comes from the learned weights."""
    analysis = await memory.ensure_golden_dog_score(classify(token))
    return analysis.to_json_dict()


@router.post("/score")
async def estimate_score(
    body: ScoreRequest,
    memory: AdaptiveMemory = Depends(get_memory),
) -> dict[str, Any]:
    score = await memory.estimate_score(
        risk_score=body.risk_score,
        is_golden_dog=body.is_golden_dog,
        risk_factors=body.risk_factors,
    )
    return {"goldenDogScore": score}


@router.post("/{address}/submit")
async def submit_analysis(
    address: str,
    analysis: dict[str, Any] = Body(...),
    memory: AdaptiveMemory = Depends(get_memory),
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    """Validate an externally produced analysis and forward it to the backend."""
    parsed = await memory.ensure_golden_dog_score(validate_analysis(analysis))
    result = await client.submit_analysis(address, parsed)
    return {"ok": True, "analysis": parsed.to_json_dict(), "result": result}


@router.get("/analyzed")
async def get_analyzed_tokens(
    days: int = Query(default=7, ge=1, le=90),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200, alias="pageSize"),
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    """Tokens the backend analyzed in the last ``days``, paginated."""
    result = await client.get_analyzed_tokens(days=days, page=page, page_size=page_size)
    return {"ok": True, "result": result}


@router.get("/score-distribution")
async def get_score_distribution(
    days: int = Query(default=7, ge=1, le=90),
    bucket: int = Query(default=10, ge=1, le=50),
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    return await client.get_golden_dog_score_distribution(days=days, bucket=bucket)


class PriceSnapshotRequest(CamelModel):
    price_usd: float = Field(ge=0)
    ts: str | None = None
    liquidity_usd: float | None = Field(default=None, ge=0)
    volume_5m_usd: float | None = Field(default=None, ge=0)


@router.get("/{address}/price-series")
async def get_price_series(
    address: str,
    from_ts: str | None = Query(default=None, alias="from"),
    to_ts: str | None = Query(default=None, alias="to"),
    limit: int = Query(default=2000, ge=1, le=10000),
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    return await client.get_token_price_series(address, from_ts=from_ts, to_ts=to_ts, limit=limit)


@router.post("/{address}/price-snapshots")
async def record_price_snapshot(
    address: str,
    body: PriceSnapshotRequest,
    client: EasyMemeClient = Depends(get_client),
) -> dict[str, Any]:
    result = await client.upsert_token_price_snapshot(
        address,
        body.price_usd,
        ts=body.ts,
        liquidity_usd=body.liquidity_usd,
        volume_5m_usd=body.volume_5m_usd,
    )
    return {"ok": True, "result": result}
