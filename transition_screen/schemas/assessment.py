"""Schemas for rule detection output and the final combined assessment."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from transition_screen.constants import MAX_COMBINED_PENALTY, MAX_RISK_SCORE

from .common import FlagCategory, RiskLevel, ScoringMode
from .evaluation import AIResult
from .safeguard import SafeguardAssessment


class RedFlag(BaseModel):
    """A rule-detected indicator of potential non-compliance or greenwashing."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: FlagCategory
    severity: RiskLevel
    description: str
    recommendation: str


class RuleResult(BaseModel):
    """Output of the rule-based red flag detector."""

    model_config = ConfigDict(frozen=True)

    flags: list[RedFlag] = Field(default_factory=list)
    positive_indicators: list[str] = Field(default_factory=list)
    risk_score: int = Field(ge=0, le=MAX_RISK_SCORE)
    overall_risk: RiskLevel
    recommendations: list[str] = Field(default_factory=list)
    # Flags withheld because the document is a previously generated screening report
    suppressed_flag_ids: list[str] = Field(default_factory=list)
    prefilter_applied: bool = False

    @property
    def flag_ids(self) -> list[str]:
        return [f.id for f in self.flags]


class CombinedAssessment(BaseModel):
    """Terminal result of one assessment.

    safeguard_assessment is reported independently and is never folded into
    combined_penalty.
    """

    model_config = ConfigDict(frozen=True)

    risk_level: RiskLevel
    combined_penalty: int = Field(ge=0, le=MAX_COMBINED_PENALTY)
    configured_mode: ScoringMode
    effective_mode: ScoringMode
    ai_evaluation_used: bool
    rule_risk_score: int = Field(ge=0, le=MAX_RISK_SCORE)
    rule_flags: list[RedFlag] = Field(default_factory=list)
    ai_result: Optional[AIResult] = None
    safeguard_assessment: Optional[SafeguardAssessment] = None
    recommendations: list[str] = Field(default_factory=list)
    positive_indicators: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-ready record for the report/UI boundary."""
        return self.model_dump(mode="json")
