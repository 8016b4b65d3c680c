"""Memory endpoints: learned weights, outcomes, user feedback, performance."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import Field

from src.api.app import limiter
from src.api.dependencies import get_memory
from src.memory.models import FeedbackChannel, FeedbackType, Outcome
from src.memory.service import AdaptiveMemory
from src.scoring.models import CamelModel, RiskFactors

router = APIRouter(prefix="/api/v1/memory", tags=["memory"])


class OutcomeRequest(CamelModel):
    token_address: str = Field(min_length=1, max_length=128)
    outcome: Outcome
    max_gain: float | None = None
    max_loss: float | None = None
    is_golden_dog: bool | None = None
    risk_factors: RiskFactors | None = None
    confidence_weight: float | None = None


class FeedbackRequest(CamelModel):
    token_address: str = Field(min_length=1, max_length=128)
    feedback_type: FeedbackType
    user_id: str = Field(min_length=1, max_length=128)
    channel: FeedbackChannel = "OPENCLAW_DIALOG"
    user_reputation: float | None = Field(default=None, ge=0, le=100)


@router.get("/weights")
async def get_weights(memory: AdaptiveMemory = Depends(get_memory)) -> dict[str, Any]:
    weights = await memory.get_weights()
    return weights.to_json_dict()


@router.post("/outcomes")
async def record_outcome(
    body: OutcomeRequest,
    memory: AdaptiveMemory = Depends(get_memory),
) -> dict[str, Any]:
    result = await memory.record_outcome(
        body.token_address,
        body.outcome,
        max_gain=body.max_gain,
        max_loss=body.max_loss,
        is_golden_dog=body.is_golden_dog,
        risk_factors=body.risk_factors,
        confidence_weight=body.confidence_weight,
    )
    return {
        "ok": True,
        "weights": result.weights.to_json_dict(),
        "rulePerformance": [p.to_json_dict() for p in result.rule_performance],
    }


@router.post("/feedback")
@limiter.limit("30/minute")
async def record_feedback(
    request: Request,
    body: FeedbackRequest,
    memory: AdaptiveMemory = Depends(get_memory),
) -> dict[str, Any]:
    result = await memory.record_feedback(
        body.token_address,
        body.feedback_type,
        body.user_id,
        body.channel,
        body.user_reputation,
    )
    return {
        "ok": True,
        "weights": result.weights.to_json_dict(),
        "feedback": result.feedback.to_json_dict(),
    }


@router.get("/performance")
async def get_performance(memory: AdaptiveMemory = Depends(get_memory)) -> dict[str, Any]:
    windows = await memory.get_performance_report()
    return {"windows": [w.to_json_dict() for w in windows]}
