"""AdaptiveMemory: caller-facing operations over the persisted weight model.

Every mutating call is load -> mutate -> save of the whole document. Calls
on one instance are serialised by an asyncio lock; writers in other
processes are detected through the store's revision CAS and the cycle is
retried against the fresh document.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from loguru import logger

from src.memory import learning
from src.memory.exceptions import MemoryConflictError, MemoryPersistError
from src.memory.models import (
    FeedbackChannel,
    FeedbackType,
    MemoryState,
    Outcome,
    OutcomeRecord,
    PerformanceWindow,
    RulePerformance,
    RuleWeights,
    UserFeedback,
    utc_now_iso,
)
from src.memory.store import MemoryStore, build_memory_store
from src.scoring.models import RiskFactors, TokenRiskAnalysis

if TYPE_CHECKING:
    from config.settings import Settings


@dataclass
class OutcomeResult:
    weights: RuleWeights
    rule_performance: list[RulePerformance]


@dataclass
class FeedbackResult:
    weights: RuleWeights
    feedback: UserFeedback


class AdaptiveMemory:
    def __init__(
        self,
        store: MemoryStore,
        *,
        max_write_retries: int = 3,
        default_user_reputation: float = 30.0,
    ) -> None:
        self._store = store
        self._max_write_retries = max(0, max_write_retries)
        self._default_user_reputation = default_user_reputation
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> AdaptiveMemory:
        store = build_memory_store(
            settings.memory_backend,
            path=settings.memory_path,
            redis_url=settings.redis_url,
            redis_key=settings.memory_redis_key,
        )
        return cls(
            store,
            max_write_retries=settings.memory_max_write_retries,
            default_user_reputation=settings.default_user_reputation,
        )

    async def close(self) -> None:
        await self._store.close()

    @property
    def last_load_error(self) -> str | None:
        """Why the last read fell back to defaults, None if it did not."""
        return self._store.last_load_error

    async def load_state(self) -> MemoryState:
        """Current document, or the default state if nothing usable is stored."""
        state = await self._store.load()
        return state if state is not None else MemoryState.default()

    async def get_weights(self) -> RuleWeights:
        return (await self.load_state()).weights

    async def estimate_score(
        self,
        *,
        risk_score: float,
        is_golden_dog: bool,
        risk_factors: RiskFactors | None = None,
    ) -> int:
        weights = await self.get_weights()
        return learning.estimate_score(
            weights,
            risk_score=risk_score,
            is_golden_dog=is_golden_dog,
            risk_factors=risk_factors,
        )

    async def ensure_golden_dog_score(self, analysis: TokenRiskAnalysis) -> TokenRiskAnalysis:
        """Return ``analysis`` with goldenDogScore filled from the learned weights."""
        if analysis.golden_dog_score is not None:
            return analysis
        score = await self.estimate_score(
            risk_score=analysis.risk_score,
            is_golden_dog=analysis.is_golden_dog,
            risk_factors=analysis.risk_factors,
        )
        return analysis.model_copy(update={"golden_dog_score": score})

    async def record_outcome(
        self,
        token_address: str,
        outcome: Outcome,
        *,
        max_gain: float | None = None,
        max_loss: float | None = None,
        is_golden_dog: bool | None = None,
        risk_factors: RiskFactors | None = None,
        confidence_weight: float | None = None,
    ) -> OutcomeResult:
        """Append a realized outcome, tune weights and update rule accuracy.

        Raises ``ValidationError`` for an unknown outcome before anything is
        loaded, ``MemoryPersistError`` if the document cannot be written.
        """
        record = OutcomeRecord(
            token_address=token_address,
            outcome=outcome,
            max_gain=max_gain,
            max_loss=max_loss,
            is_golden_dog=is_golden_dog,
            risk_factors=risk_factors,
            confidence_weight=confidence_weight,
        )

        def mutate(state: MemoryState) -> tuple[MemoryState, None]:
            performance = learning.update_rule_performance_on_outcome(
                state.rule_performance,
                rule_id=learning.GOLDEN_DOG_RULE_ID,
                outcome=record.outcome,
                is_golden_dog=record.is_golden_dog,
            )
            performance = learning.update_factor_performance_on_outcome(
                performance,
                outcome=record.outcome,
                risk_factors=record.risk_factors,
                confidence_weight=record.confidence_weight,
            )
            weights = learning.update_weights(
                state.weights, outcome=record.outcome, is_golden_dog=record.is_golden_dog
            )
            return state.model_copy(update={
                "outcomes": [*state.outcomes, record],
                "weights": weights,
                "rule_performance": performance,
            }), None

        state, _ = await self._mutate("record-outcome", mutate)
        logger.info(
            f"[MEMORY] Outcome {record.outcome} for {token_address[:12]} "
            f"(golden={record.is_golden_dog}) -> bias={state.weights.golden_dog_bias:.2f} "
            f"high={state.weights.high_penalty:.2f} medium={state.weights.medium_penalty:.2f}"
        )
        return OutcomeResult(weights=state.weights, rule_performance=state.rule_performance)

    async def record_feedback(
        self,
        token_address: str,
        feedback_type: FeedbackType,
        user_id: str,
        channel: FeedbackChannel,
        user_reputation: float | None = None,
    ) -> FeedbackResult:
        """Apply one user's verdict on a token to the weights.

        The nudge is ``reputation / 100`` decayed by how often this user has
        already given feedback, and the decayed value is what gets stored as
        ``feedbackWeight``. Earlier versions of the skill applied the
        undecayed ``reputation / 100``, so stored weights from those runs are
        larger for repeat users.
        """
        reputation = user_reputation if user_reputation is not None else self._default_user_reputation
        reputation = max(0.0, min(100.0, reputation))
        base_weight = reputation / 100

        draft = UserFeedback(
            token_address=token_address,
            feedback_type=feedback_type,
            user_id=user_id,
            channel=channel,
            user_reputation=reputation,
            feedback_weight=base_weight,
        )

        def mutate(state: MemoryState) -> tuple[MemoryState, UserFeedback]:
            reputations = learning.upsert_user_reputation(
                state.user_reputations, user_id=user_id, reputation=reputation
            )
            count = next(r.feedback_count for r in reputations if r.user_id == user_id)
            weight = learning.decay_feedback_weight(base_weight, count, reputation)
            feedback = draft.model_copy(update={"feedback_weight": weight})
            weights = learning.apply_feedback(
                state.weights, feedback_type=draft.feedback_type, weight=weight
            )
            return state.model_copy(update={
                "feedbacks": [*state.feedbacks, feedback],
                "user_reputations": reputations,
                "weights": weights,
            }), feedback

        state, feedback = await self._mutate("record-feedback", mutate)
        logger.info(
            f"[MEMORY] Feedback {feedback.feedback_type} on {token_address[:12]} "
            f"from {user_id} via {channel} weight={feedback.feedback_weight:.3f}"
        )
        return FeedbackResult(weights=state.weights, feedback=feedback)

    async def get_performance_report(self, *, now: datetime | None = None) -> list[PerformanceWindow]:
        state = await self.load_state()
        return learning.build_performance_windows(state, now=now)

    async def _mutate(
        self,
        operation: str,
        mutate: Callable[[MemoryState], tuple[MemoryState, Any]],
    ) -> tuple[MemoryState, Any]:
        async with self._lock:
            last_conflict: MemoryConflictError | None = None
            for attempt in range(self._max_write_retries + 1):
                state = await self.load_state()
                updated, extra = mutate(state)
                updated = updated.model_copy(
                    update={"revision": state.revision + 1, "updated_at": utc_now_iso()}
                )
                try:
                    await self._store.save(updated, expected_revision=state.revision)
                except MemoryConflictError as e:
                    last_conflict = e
                    logger.warning(
                        f"[MEMORY] {operation}: {e}, retry {attempt + 1}/{self._max_write_retries}"
                    )
                    continue
                except Exception as e:
                    logger.error(f"[MEMORY] {operation}: save failed: {e}")
                    raise MemoryPersistError(operation, e) from e
                return updated, extra

            raise MemoryPersistError(operation, last_conflict)
