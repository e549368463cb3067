"""Pydantic schemas for AI component evaluation.

ComponentEvaluation doubles as the strict decode target for model output:
field names are accepted in the camelCase form the prompts request, unknown
keys are rejected, and every score is bounded. A response that fails this
schema is dropped rather than repaired.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from transition_screen.constants import COMPONENT_MAX_SCORE

from .common import AIRiskLevel, FindingStatus


class Dimension(str, Enum):
    """Independently scored rubric dimensions of the AI evaluator (25 pts each)."""

    CLAIM_CREDIBILITY = "claimCredibility"
    DOCUMENT_CONSISTENCY = "documentConsistency"
    COMMITMENT_STRENGTH = "commitmentStrength"
    VERIFICATION_ADEQUACY = "verificationAdequacy"

    @property
    def display_name(self) -> str:
        return {
            "claimCredibility": "Claim Credibility",
            "documentConsistency": "Document Consistency",
            "commitmentStrength": "Commitment Strength",
            "verificationAdequacy": "Verification & Transparency",
        }[self.value]


class ComponentFinding(BaseModel):
    """One scored criterion inside a dimension."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    criterion: str
    max_points: int = Field(alias="maxPoints", gt=0)
    points: int = Field(ge=0)
    status: FindingStatus
    evidence: str
    concern: Optional[str] = None

    @model_validator(mode="after")
    def _points_within_max(self) -> "ComponentFinding":
        if self.points > self.max_points:
            raise ValueError(f"points {self.points} exceed maxPoints {self.max_points} for '{self.criterion}'")
        return self


class ComponentEvaluation(BaseModel):
    """Result of one dimension evaluation (0-25)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    component: Dimension
    component_name: str = Field(alias="componentName")
    max_score: Literal[25] = Field(default=COMPONENT_MAX_SCORE, alias="maxScore")
    score: int = Field(ge=0, le=COMPONENT_MAX_SCORE)
    confidence: int = Field(ge=0, le=100)
    findings: list[ComponentFinding]
    assessment: str = Field(alias="overallAssessment")
    recommendations: list[str]


class AIResult(BaseModel):
    """Aggregate of all successful dimension evaluations.

    normalized_score is 0-100 where higher = less greenwashing risk.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    normalized_score: int = Field(ge=0, le=100)
    risk_level: AIRiskLevel
    confidence: int = Field(ge=0, le=100)
    components: list[ComponentEvaluation] = Field(default_factory=list)
    summary: str = ""
    top_concerns: list[str] = Field(default_factory=list)
    positive_findings: list[str] = Field(default_factory=list)
    dimensions_attempted: int = 0

    @classmethod
    def failed(cls, summary: str, dimensions_attempted: int = 0) -> "AIResult":
        """Result used when no dimension could be evaluated."""
        return cls(
            success=False,
            normalized_score=0,
            risk_level=AIRiskLevel.HIGH,
            confidence=0,
            summary=summary,
            dimensions_attempted=dimensions_attempted,
        )
