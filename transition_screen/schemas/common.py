"""Shared enums for project screening.

Value types used by the rule detector, the AI evaluators and the score
combiner. All enums are `str` subclasses so they serialize as plain strings.
"""

from enum import Enum


class Sector(str, Enum):
    """Project sectors covered by the screening rubric."""

    ENERGY = "energy"
    MINING = "mining"
    AGRICULTURE = "agriculture"
    TRANSPORT = "transport"
    MANUFACTURING = "manufacturing"


# Sectors where Scope 3 emissions are likely material
MATERIAL_SCOPE3_SECTORS = frozenset({Sector.MANUFACTURING, Sector.AGRICULTURE, Sector.MINING})


class RiskLevel(str, Enum):
    """Three-tier risk level used for red flags and the combined assessment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FlagCategory(str, Enum):
    """Categories of rule-detected red flags."""

    TECHNOLOGY = "technology"
    AMBITION = "ambition"
    COMMITMENT = "commitment"
    VERIFICATION = "verification"
    SCOPE = "scope"
    BASELINE = "baseline"


class FindingStatus(str, Enum):
    """Status of a single criterion inside an AI component evaluation."""

    STRONG = "strong"
    ADEQUATE = "adequate"
    WEAK = "weak"
    MISSING = "missing"


class AIRiskLevel(str, Enum):
    """Five-tier risk level derived from the normalized AI score.

    Higher AI score = lower greenwashing risk.
    """

    LOW = "low"
    MEDIUM_LOW = "medium-low"
    MEDIUM = "medium"
    MEDIUM_HIGH = "medium-high"
    HIGH = "high"

    @classmethod
    def from_score(cls, score: int) -> "AIRiskLevel":
        """Map a normalized 0-100 score to a risk level."""
        if score >= 80:
            return cls.LOW
        if score >= 60:
            return cls.MEDIUM_LOW
        if score >= 40:
            return cls.MEDIUM
        if score >= 20:
            return cls.MEDIUM_HIGH
        return cls.HIGH


class ScoringMode(str, Enum):
    """How the score combiner blends rule and AI penalties."""

    RULE = "rule"
    AI = "ai"
    HYBRID = "hybrid"


class SafeguardObjective(str, Enum):
    """Environmental objectives assessed for Do No Significant Harm (EU Taxonomy Art. 17)."""

    CLIMATE_MITIGATION = "climate_mitigation"
    CLIMATE_ADAPTATION = "climate_adaptation"
    WATER_RESOURCES = "water_resources"
    CIRCULAR_ECONOMY = "circular_economy"
    POLLUTION_PREVENTION = "pollution_prevention"
    BIODIVERSITY = "biodiversity"

    @property
    def display_name(self) -> str:
        """Human-readable objective name."""
        return {
            "climate_mitigation": "Climate Change Mitigation",
            "climate_adaptation": "Climate Change Adaptation",
            "water_resources": "Water & Marine Resources",
            "circular_economy": "Circular Economy",
            "pollution_prevention": "Pollution Prevention",
            "biodiversity": "Biodiversity & Ecosystems",
        }[self.value]


class SafeguardStatus(str, Enum):
    """Harm status for a single safeguard objective."""

    NO_HARM = "no_harm"
    POTENTIAL_HARM = "potential_harm"
    SIGNIFICANT_HARM = "significant_harm"
    NOT_ASSESSED = "not_assessed"


class ComplianceStatus(str, Enum):
    """Overall safeguard compliance status."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"
