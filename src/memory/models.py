"""Persisted learning state: one JSON document, camelCase on disk."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import Field

from src.scoring.models import CamelModel, RiskFactors

Outcome = Literal["MOON", "RUG", "FLAT"]
FeedbackType = Literal["CONFIRM_GOLDEN", "DENY_GOLDEN", "REPORT_RUG"]
FeedbackChannel = Literal["OPENCLAW_DIALOG", "TELEGRAM"]
WindowName = Literal["7d", "30d", "all"]

SCHEMA_VERSION = 1


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RuleWeights(CamelModel):
    base_multiplier: float = 1.0
    golden_dog_bias: float = 12.0
    high_penalty: float = 15.0
    medium_penalty: float = 6.0


DEFAULT_WEIGHTS = RuleWeights()


class OutcomeRecord(CamelModel):
    token_address: str
    outcome: Outcome
    max_gain: float | None = None
    max_loss: float | None = None
    is_golden_dog: bool | None = None
    risk_factors: RiskFactors | None = None
    confidence_weight: float | None = None
    timestamp: str = Field(default_factory=utc_now_iso)


class UserFeedback(CamelModel):
    token_address: str
    feedback_type: FeedbackType
    user_id: str
    channel: FeedbackChannel
    user_reputation: float
    feedback_weight: float
    timestamp: str = Field(default_factory=utc_now_iso)


class UserReputation(CamelModel):
    user_id: str
    reputation: float
    feedback_count: int = 1
    last_seen_at: str = Field(default_factory=utc_now_iso)


class RulePerformance(CamelModel):
    rule_id: str
    correct: float = 0.0
    total: float = 0.0
    accuracy: float = 0.0
    updated_at: str = Field(default_factory=utc_now_iso)


class PerformanceWindow(CamelModel):
    window: WindowName
    by_rule: list[RulePerformance] = Field(default_factory=list)


class MemoryState(CamelModel):
    version: int = SCHEMA_VERSION
    revision: int = 0  # bumped on every successful save
    updated_at: str = Field(default_factory=utc_now_iso)
    weights: RuleWeights
    outcomes: list[OutcomeRecord] = Field(default_factory=list)
    feedbacks: list[UserFeedback] = Field(default_factory=list)
    user_reputations: list[UserReputation] = Field(default_factory=list)
    rule_performance: list[RulePerformance] = Field(default_factory=list)

    @classmethod
    def default(cls) -> "MemoryState":
        return cls(weights=DEFAULT_WEIGHTS.model_copy())
