"""Pydantic schema for the project under assessment.

ProjectInput is the canonical, validated record consumed by every evaluator.
It is frozen: created once per assessment request and never mutated.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Sector


class EmissionsData(BaseModel):
    """Annual emissions by GHG Protocol scope (tCO2e/year)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope1: float = Field(default=0.0, ge=0)
    scope2: float = Field(default=0.0, ge=0)
    scope3: Optional[float] = Field(default=None, ge=0)

    @property
    def operational_total(self) -> float:
        """Scope 1 + Scope 2 (the baseline the trajectory checks use)."""
        return self.scope1 + self.scope2


class ProjectInput(BaseModel):
    """A financing project submitted for transition screening."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Basic info
    project_name: str
    country: str
    sector: Sector
    project_type: str = ""
    description: str = ""

    # Financials (USD)
    total_cost: float = Field(default=0.0, ge=0)
    debt_amount: float = Field(default=0.0, ge=0)
    equity_amount: float = Field(default=0.0, ge=0)

    # Transition info
    current_emissions: EmissionsData = Field(default_factory=EmissionsData)
    target_emissions: EmissionsData = Field(default_factory=EmissionsData)
    target_year: int = Field(default=0, ge=0)

    # Totals capture sources that don't fit Scope 1/2/3 (preferred when present)
    total_baseline_emissions: Optional[float] = Field(default=None, ge=0)
    total_target_emissions: Optional[float] = Field(default=None, ge=0)
    stated_reduction_percent: Optional[float] = None

    # Strategy
    transition_strategy: str = ""
    has_published_plan: bool = False
    third_party_verification: bool = False
    technology: Optional[str] = None

    # Raw extracted document text (preserves the original document's wording)
    raw_document_text: Optional[str] = None

    def narrative_text(self, include_type: bool = False) -> str:
        """Lower-cased description + strategy (+ project type)."""
        parts = [self.description, self.transition_strategy]
        if include_type:
            parts.append(self.project_type)
        return " ".join(parts).lower()

    def document_or_narrative_text(self, include_type: bool = False) -> str:
        """Raw document text if present, otherwise the narrative fields."""
        if self.raw_document_text:
            return self.raw_document_text.lower()
        return self.narrative_text(include_type=include_type)

    @property
    def baseline_total(self) -> float:
        if self.total_baseline_emissions:
            return self.total_baseline_emissions
        return self.current_emissions.operational_total

    @property
    def target_total(self) -> float:
        if self.total_target_emissions is not None and self.total_baseline_emissions:
            return self.total_target_emissions
        return self.target_emissions.operational_total
