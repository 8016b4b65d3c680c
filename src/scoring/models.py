"""Token and risk-analysis models shared by the classifier, memory and API."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
RiskVerdict = Literal["SAFE", "WARNING", "DANGER"]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire (backend + memory.json)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RiskFactors(CamelModel):
    honeypot_risk: RiskLevel | None = None
    tax_risk: RiskLevel | None = None
    owner_risk: RiskLevel | None = None
    concentration_risk: RiskLevel | None = None

    def levels(self) -> list[tuple[str, RiskLevel | None]]:
        """(factor name, level) pairs in the fixed factor order."""
        return [
            ("honeypot", self.honeypot_risk),
            ("tax", self.tax_risk),
            ("owner", self.owner_risk),
            ("concentration", self.concentration_risk),
        ]


class TokenRiskAnalysis(CamelModel):
    model_config = ConfigDict(frozen=True)

    risk_score: float = Field(ge=0, le=100)
    risk_level: RiskVerdict
    is_golden_dog: bool
    risk_factors: RiskFactors
    reasoning: str
    recommendation: str
    golden_dog_score: float | None = None
    decision_reason: str | None = None


class PendingToken(CamelModel):
    """Token awaiting analysis, as served by the backend's pending queue.

    ``goplus``, ``dexscreener`` and ``holder_distribution`` are kept as raw
    JSON: the classifier decodes them leniently.
    """

    address: str
    name: str | None = None
    symbol: str | None = None
    liquidity: float | None = None
    creator_address: str | None = None
    created_at: str | None = None
    pair_address: str | None = None
    goplus: dict[str, Any] | None = None
    dexscreener: dict[str, Any] | None = None
    holder_distribution: dict[str, Any] | list[Any] | None = None
