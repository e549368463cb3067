"""Pydantic schemas for the safeguard (Do No Significant Harm) assessment.

Two layers:
- SafeguardPayload / SafeguardCriterionPayload: strict decode targets for the
  model's JSON output (camelCase keys, unknown keys rejected).
- SafeguardCriterion / SafeguardAssessment: normalized results reported
  alongside, never inside, the combined risk penalty.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from transition_screen.constants import SAFEGUARD_CRITERION_MAX_SCORE

from .common import ComplianceStatus, SafeguardObjective, SafeguardStatus


class SafeguardCriterionPayload(BaseModel):
    """One objective as returned by the model, before normalization."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    objective: SafeguardObjective
    objective_name: Optional[str] = Field(default=None, alias="objectiveName")
    # Unknown statuses are coerced to not_assessed during normalization
    status: str
    score: int = Field(ge=0, le=SAFEGUARD_CRITERION_MAX_SCORE)
    evidence: str = ""
    concern: Optional[str] = None
    is_fundamentally_incompatible: bool = Field(default=False, alias="isFundamentallyIncompatible")
    recommendation: Optional[str] = None


class SafeguardPayload(BaseModel):
    """Top-level model output for the safeguard rubric."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    # Exactly one entry per objective
    criteria: list[SafeguardCriterionPayload]
    is_fundamentally_incompatible: bool = Field(default=False, alias="isFundamentallyIncompatible")
    incompatibility_reason: Optional[str] = Field(default=None, alias="incompatibilityReason")
    summary: str = ""
    key_risks: list[str] = Field(default_factory=list, alias="keyRisks")
    recommendations: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_criterion_per_objective(self) -> "SafeguardPayload":
        seen = [c.objective for c in self.criteria]
        duplicates = sorted({o.value for o in seen if seen.count(o) > 1})
        if duplicates:
            raise ValueError(f"duplicate objectives: {duplicates}")
        missing = [o.value for o in SafeguardObjective if o not in seen]
        if missing:
            raise ValueError(f"missing objectives: {missing}")
        return self


class SafeguardCriterion(BaseModel):
    """Normalized result for one environmental objective (0-4)."""

    model_config = ConfigDict(frozen=True)

    objective: SafeguardObjective
    objective_name: str
    status: SafeguardStatus
    score: int = Field(ge=0, le=SAFEGUARD_CRITERION_MAX_SCORE)
    max_score: Literal[4] = SAFEGUARD_CRITERION_MAX_SCORE
    evidence: str = ""
    concern: Optional[str] = None
    is_fundamentally_incompatible: bool = False
    # Only present for fixable issues
    recommendation: Optional[str] = None


class SafeguardAssessment(BaseModel):
    """Independent DNSH compliance signal.

    Reported next to the combined assessment; it never contributes to the
    combined penalty.
    """

    model_config = ConfigDict(frozen=True)

    overall_status: ComplianceStatus
    total_score: int = Field(ge=0)
    normalized_score: int = Field(ge=0, le=100)
    criteria: list[SafeguardCriterion]
    summary: str = ""
    key_risks: list[str] = Field(default_factory=list)
    # Empty when the project is fundamentally incompatible
    recommendations: list[str] = Field(default_factory=list)
    is_fundamentally_incompatible: bool = False
    incompatibility_reason: Optional[str] = None
    source: Literal["ai", "rules"] = "ai"
