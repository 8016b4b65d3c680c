"""Rule-weight model: scoring, weight updates, decay and accuracy bookkeeping.

Every function here is pure. Lists are never mutated in place: callers get a
new list back and must treat it as the new canonical state.

Weight bounds after any update:
- goldenDogBias: 2..25
- highPenalty: 8..25
- mediumPenalty: 4..12
"""

import math
from datetime import UTC, datetime, timedelta

from src.memory.models import (
    FeedbackType,
    MemoryState,
    Outcome,
    PerformanceWindow,
    RulePerformance,
    RuleWeights,
    UserReputation,
    WindowName,
    utc_now_iso,
)
from src.scoring.models import RiskFactors, RiskLevel

GOLDEN_DOG_RULE_ID = "golden_dog_decision"

WINDOWS: list[tuple[WindowName, int | None]] = [("7d", 7), ("30d", 30), ("all", None)]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    """Round .5 towards +inf: 6.5 -> 7, -2.5 -> -2."""
    return math.floor(value + 0.5)


def count_risk_levels(factors: RiskFactors | None) -> tuple[int, int]:
    """Return (high, medium) counts over the four factors."""
    if factors is None:
        return 0, 0
    high = medium = 0
    for _name, level in factors.levels():
        if level == "HIGH":
            high += 1
        elif level == "MEDIUM":
            medium += 1
    return high, medium


def estimate_score(
    weights: RuleWeights,
    *,
    risk_score: float,
    is_golden_dog: bool,
    risk_factors: RiskFactors | None = None,
) -> int:
    """Golden dog score 0-100 from the learned weights."""
    high, medium = count_risk_levels(risk_factors)
    if is_golden_dog:
        bias = weights.golden_dog_bias
    else:
        bias = -_round_half_up(weights.golden_dog_bias / 2)
    raw = (
        risk_score * weights.base_multiplier
        + bias
        - weights.high_penalty * high
        - weights.medium_penalty * medium
    )
    return int(_clamp(_round_half_up(raw), 0, 100))


def update_weights(
    weights: RuleWeights,
    *,
    outcome: Outcome,
    is_golden_dog: bool | None,
) -> RuleWeights:
    """Nudge weights after a realized outcome.

    Only golden dog calls are tuned. Outcomes of tokens the model rejected
    leave the weights untouched (they still count in rule performance).
    """
    if not is_golden_dog:
        return weights.model_copy()

    bias = weights.golden_dog_bias
    high = weights.high_penalty
    medium = weights.medium_penalty
    if outcome == "MOON":
        bias = min(25, bias + 1)
        high = max(8, high - 0.5)
        medium = max(4, medium - 0.25)
    elif outcome == "RUG":
        bias = max(4, bias - 2)
        high = min(25, high + 1)
        medium = min(12, medium + 0.5)
    elif outcome == "FLAT":
        bias = max(6, bias - 0.5)

    return weights.model_copy(
        update={"golden_dog_bias": bias, "high_penalty": high, "medium_penalty": medium}
    )


def apply_feedback(
    weights: RuleWeights,
    *,
    feedback_type: FeedbackType,
    weight: float,
) -> RuleWeights:
    """Additive nudge from one piece of user feedback, scaled by ``weight``."""
    w = _clamp(weight, 0, 1)
    bias = weights.golden_dog_bias
    high = weights.high_penalty
    medium = weights.medium_penalty
    if feedback_type == "CONFIRM_GOLDEN":
        bias = min(25, bias + 1.2 * w)
    elif feedback_type == "DENY_GOLDEN":
        bias = max(4, bias - 1.5 * w)
        medium = min(12, medium + 0.4 * w)
    elif feedback_type == "REPORT_RUG":
        bias = max(2, bias - 2.0 * w)
        high = min(25, high + 0.8 * w)
        medium = min(12, medium + 0.5 * w)

    return weights.model_copy(
        update={"golden_dog_bias": bias, "high_penalty": high, "medium_penalty": medium}
    )


def decay_feedback_weight(
    base_weight: float,
    user_feedback_count: int,
    user_reputation: float,
) -> float:
    """Effective feedback weight in [0.05, 1].

    Influence per event shrinks with log10 of the user's feedback count;
    reputation scales it within a 0.7x-1.0x band.
    """
    count = max(1, user_feedback_count)
    count_decay = 1 / (1 + math.log10(count))
    rep_boost = 0.7 + _clamp(user_reputation, 0, 100) / 100 * 0.3
    decayed = _clamp(base_weight, 0, 1) * count_decay * rep_boost
    return _clamp(decayed, 0.05, 1)


def upsert_user_reputation(
    reputations: list[UserReputation] | None,
    *,
    user_id: str,
    reputation: float,
    now: str | None = None,
) -> list[UserReputation]:
    """Overwrite reputation and bump the count for ``user_id``, or append it."""
    updated = list(reputations or [])
    now = now or utc_now_iso()
    for idx, entry in enumerate(updated):
        if entry.user_id == user_id:
            updated[idx] = entry.model_copy(update={
                "reputation": reputation,
                "feedback_count": entry.feedback_count + 1,
                "last_seen_at": now,
            })
            return updated
    updated.append(
        UserReputation(user_id=user_id, reputation=reputation, feedback_count=1, last_seen_at=now)
    )
    return updated


def _accumulate(
    performance: list[RulePerformance],
    rule_id: str,
    *,
    correct: bool,
    weight: float,
    now: str,
) -> None:
    """Add one weighted observation for ``rule_id`` into ``performance`` (a private copy)."""
    for idx, entry in enumerate(performance):
        if entry.rule_id == rule_id:
            total = entry.total + weight
            hits = entry.correct + (weight if correct else 0)
            performance[idx] = entry.model_copy(update={
                "total": total,
                "correct": hits,
                "accuracy": hits / total if total > 0 else 0.0,
                "updated_at": now,
            })
            return
    performance.append(RulePerformance(
        rule_id=rule_id,
        correct=weight if correct else 0.0,
        total=weight,
        accuracy=1.0 if correct else 0.0,
        updated_at=now,
    ))


def update_rule_performance_on_outcome(
    performance: list[RulePerformance] | None,
    *,
    rule_id: str,
    outcome: Outcome,
    is_golden_dog: bool | None,
    now: str | None = None,
) -> list[RulePerformance]:
    """Score the golden dog decision: MOON for a call or RUG for a pass is correct."""
    updated = list(performance or [])
    if is_golden_dog is None or outcome == "FLAT":
        return updated
    correct = (is_golden_dog and outcome == "MOON") or (not is_golden_dog and outcome == "RUG")
    _accumulate(updated, rule_id, correct=correct, weight=1.0, now=now or utc_now_iso())
    return updated


def _is_factor_prediction_correct(level: RiskLevel | None, outcome: Outcome) -> bool | None:
    if level is None or outcome == "FLAT":
        return None
    if outcome == "RUG":
        return level in ("HIGH", "MEDIUM")
    return level == "LOW"


def update_factor_performance_on_outcome(
    performance: list[RulePerformance] | None,
    *,
    outcome: Outcome,
    risk_factors: RiskFactors | None,
    confidence_weight: float | None = None,
    now: str | None = None,
) -> list[RulePerformance]:
    """Score each risk factor against the outcome, weighted by analysis confidence."""
    updated = list(performance or [])
    if outcome == "FLAT" or risk_factors is None:
        return updated
    now = now or utc_now_iso()
    weight = _clamp(1.0 if confidence_weight is None else confidence_weight, 0.1, 1)
    for name, level in risk_factors.levels():
        correct = _is_factor_prediction_correct(level, outcome)
        if correct is None:
            continue
        _accumulate(updated, f"factor_{name}", correct=correct, weight=weight, now=now)
    return updated


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def build_performance_windows(
    state: MemoryState,
    *,
    now: datetime | None = None,
) -> list[PerformanceWindow]:
    """Recompute rule and factor accuracy for the 7d, 30d and all-time windows.

    Each window is folded from an empty list; windows share no state.
    Outcomes with unparsable timestamps are ignored everywhere.
    """
    now = now or datetime.now(UTC)
    stamp = utc_now_iso()
    dated = [
        (ts, out)
        for out in state.outcomes
        if (ts := parse_timestamp(out.timestamp)) is not None
    ]

    windows = []
    for name, days in WINDOWS:
        cutoff = now - timedelta(days=days) if days is not None else None
        performance: list[RulePerformance] = []
        for ts, out in dated:
            if cutoff is not None and ts < cutoff:
                continue
            performance = update_rule_performance_on_outcome(
                performance,
                rule_id=GOLDEN_DOG_RULE_ID,
                outcome=out.outcome,
                is_golden_dog=out.is_golden_dog,
                now=stamp,
            )
            performance = update_factor_performance_on_outcome(
                performance,
                outcome=out.outcome,
                risk_factors=out.risk_factors,
                confidence_weight=out.confidence_weight,
                now=stamp,
            )
        windows.append(PerformanceWindow(window=name, by_rule=performance))
    return windows
