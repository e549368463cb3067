"""Pydantic schemas for project screening."""

from .assessment import CombinedAssessment, RedFlag, RuleResult
from .common import (
    AIRiskLevel,
    ComplianceStatus,
    FindingStatus,
    FlagCategory,
    RiskLevel,
    SafeguardObjective,
    SafeguardStatus,
    ScoringMode,
    Sector,
)
from .evaluation import AIResult, ComponentEvaluation, ComponentFinding, Dimension
from .project import EmissionsData, ProjectInput
from .safeguard import (
    SafeguardAssessment,
    SafeguardCriterion,
    SafeguardCriterionPayload,
    SafeguardPayload,
)

__all__ = [
    # Enums
    "AIRiskLevel",
    "ComplianceStatus",
    "Dimension",
    "FindingStatus",
    "FlagCategory",
    "RiskLevel",
    "SafeguardObjective",
    "SafeguardStatus",
    "ScoringMode",
    "Sector",
    # Input
    "EmissionsData",
    "ProjectInput",
    # Rule detection
    "RedFlag",
    "RuleResult",
    # AI evaluation
    "AIResult",
    "ComponentEvaluation",
    "ComponentFinding",
    # Safeguard
    "SafeguardAssessment",
    "SafeguardCriterion",
    "SafeguardCriterionPayload",
    "SafeguardPayload",
    # Output
    "CombinedAssessment",
]
