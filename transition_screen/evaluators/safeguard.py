"""
Safeguard Evaluator - EU Taxonomy "Do No Significant Harm" (Art. 17) screen.

Scores six environmental objectives 0-4 each. The AI path makes a single
gateway call; when the call fails or its output does not validate, a
deterministic keyword screen produces the assessment instead (source="rules").

Fixable gaps carry recommendations. Fundamentally incompatible activities
(fossil extraction, deforestation, development in protected areas) carry none.

The result is an independent compliance signal; it never feeds the combined
penalty.
"""

import logging
from typing import Callable, Optional

from transition_screen.constants import (
    COMPONENT_MAX_TOKENS,
    MAX_DOCUMENT_CHARS_SAFEGUARD,
    MAX_SAFEGUARD_FALLBACK_RECOMMENDATIONS,
    SAFEGUARD_COMPLIANT_THRESHOLD,
    SAFEGUARD_CRITERION_MAX_SCORE,
)
from transition_screen.llm.llm_client import ProviderGateway
from transition_screen.llm.prompt_loader import load_prompt
from transition_screen.llm.response_parser import ResponseParseError, parse_model_output
from transition_screen.schemas.common import (
    ComplianceStatus,
    SafeguardObjective,
    SafeguardStatus,
    Sector,
)
from transition_screen.schemas.project import ProjectInput
from transition_screen.schemas.safeguard import (
    SafeguardAssessment,
    SafeguardCriterion,
    SafeguardPayload,
)
from transition_screen.scorers.combiner import round_half_up
from transition_screen.scorers.safeguard_weights import SectorWeights, get_sector_weights

logger = logging.getLogger(__name__)

SAFEGUARD_PROMPT = "safeguard_dnsh"

# Keyword screen vocabulary
FOSSIL_EXTRACTION_TERMS = (
    "coal mining",
    "oil drilling",
    "oil extraction",
    "natural gas extraction",
    "petroleum",
    "crude oil",
    "coal power",
    "fossil fuel expansion",
)
DEFORESTATION_TERMS = ("deforest", "forest clear", "land clearing", "primary forest")

WATER_INTENSIVE_SECTORS = frozenset({Sector.MINING, Sector.AGRICULTURE, Sector.MANUFACTURING})
POLLUTING_SECTORS = frozenset({Sector.MINING, Sector.MANUFACTURING, Sector.ENERGY})

FOSSIL_INCOMPATIBILITY = (
    "Fossil fuel extraction/expansion is fundamentally incompatible with EU Taxonomy climate objectives. "
    "No mitigation measures can change this classification."
)
DEFORESTATION_INCOMPATIBILITY = (
    "Deforestation or primary forest clearing is fundamentally incompatible with EU Taxonomy biodiversity objectives."
)
PROTECTED_AREA_INCOMPATIBILITY = (
    "Development in protected areas without legal exception is fundamentally incompatible with EU Taxonomy."
)


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def _format_percent(value: Optional[float]) -> str:
    return "Not stated" if value is None else f"{value:g}%"


def build_user_prompt(project: ProjectInput, document: str) -> str:
    return f"""Assess DNSH compliance for this African {project.sector.value} project.

## Project Details
- **Name**: {project.project_name}
- **Country**: {project.country}
- **Sector**: {project.sector.value}
- **Type**: {project.project_type or 'Not specified'}
- **Technology**: {project.technology or 'Not specified'}
- **Description**: {project.description}

## Transition Strategy
{project.transition_strategy or 'Not provided'}

## Emissions Data
- Baseline: {project.baseline_total:g} tCO2e/year
- Target: {project.target_total:g} tCO2e/year
- Target Year: {project.target_year}
- Stated Reduction: {_format_percent(project.stated_reduction_percent)}

## Full Document Text (for evidence extraction)
{document[:MAX_DOCUMENT_CHARS_SAFEGUARD]}

---
Evaluate against all 6 DNSH objectives. Be specific about evidence found in the document.
Focus on practical environmental harms, not theoretical risks."""


def coerce_status(status: str) -> SafeguardStatus:
    """Unknown statuses become not_assessed."""
    try:
        return SafeguardStatus(status)
    except ValueError:
        return SafeguardStatus.NOT_ASSESSED


def weighted_normalized_score(criteria: list[SafeguardCriterion], weights: SectorWeights) -> int:
    """Sector-weighted share of the maximum score, 0-100."""
    weighted_total = 0.0
    max_weighted_total = 0.0
    for criterion in criteria:
        weight = weights.weight_for(criterion.objective)
        weighted_total += criterion.score * weight
        max_weighted_total += SAFEGUARD_CRITERION_MAX_SCORE * weight
    if max_weighted_total <= 0:
        return 0
    return round_half_up(weighted_total / max_weighted_total * 100)


def overall_status(
    criteria: list[SafeguardCriterion],
    normalized_score: int,
    incompatible: bool,
) -> ComplianceStatus:
    statuses = {c.status for c in criteria}
    if incompatible or SafeguardStatus.SIGNIFICANT_HARM in statuses:
        return ComplianceStatus.NON_COMPLIANT
    if SafeguardStatus.POTENTIAL_HARM in statuses or normalized_score < SAFEGUARD_COMPLIANT_THRESHOLD:
        return ComplianceStatus.PARTIAL
    return ComplianceStatus.COMPLIANT


def normalize_payload(payload: SafeguardPayload, weights: SectorWeights) -> SafeguardAssessment:
    """Turn validated model output into a SafeguardAssessment."""
    criteria = [
        SafeguardCriterion(
            objective=c.objective,
            objective_name=c.objective_name or c.objective.display_name,
            status=coerce_status(c.status),
            score=c.score,
            evidence=c.evidence,
            concern=c.concern,
            is_fundamentally_incompatible=c.is_fundamentally_incompatible,
            recommendation=None if c.is_fundamentally_incompatible else c.recommendation,
        )
        for c in payload.criteria
    ]

    incompatible = payload.is_fundamentally_incompatible or any(c.is_fundamentally_incompatible for c in criteria)
    normalized = weighted_normalized_score(criteria, weights)

    return SafeguardAssessment(
        overall_status=overall_status(criteria, normalized, incompatible),
        total_score=sum(c.score for c in criteria),
        normalized_score=normalized,
        criteria=criteria,
        summary=payload.summary or "DNSH assessment completed",
        key_risks=payload.key_risks,
        recommendations=[] if incompatible else payload.recommendations,
        is_fundamentally_incompatible=incompatible,
        incompatibility_reason=payload.incompatibility_reason or None,
        source="ai",
    )


def rule_based_assessment(
    project: ProjectInput,
    document: str,
    weights: Optional[SectorWeights] = None,
) -> SafeguardAssessment:
    """Deterministic keyword screen used when the AI path is unavailable.

    Scored with the same sector weights and status rules as the AI path.
    """
    text = f"{document} {project.description} {project.transition_strategy}".lower()

    is_fossil = _contains_any(text, FOSSIL_EXTRACTION_TERMS)
    is_deforestation = _contains_any(text, DEFORESTATION_TERMS)
    is_protected_area = "protected area" in text and "develop" in text
    incompatible = is_fossil or is_deforestation or is_protected_area

    incompatibility_reason = None
    if is_fossil:
        incompatibility_reason = FOSSIL_INCOMPATIBILITY
    elif is_deforestation:
        incompatibility_reason = DEFORESTATION_INCOMPATIBILITY
    elif is_protected_area:
        incompatibility_reason = PROTECTED_AREA_INCOMPATIBILITY

    criteria: list[SafeguardCriterion] = []

    # Climate mitigation
    has_reduction = "emission" in text and ("reduc" in text or "target" in text)
    if is_fossil:
        criteria.append(
            SafeguardCriterion(
                objective=SafeguardObjective.CLIMATE_MITIGATION,
                objective_name=SafeguardObjective.CLIMATE_MITIGATION.display_name,
                status=SafeguardStatus.SIGNIFICANT_HARM,
                score=0,
                evidence="Fossil fuel activity detected",
                concern="Fossil fuel activities lead to significant GHG emissions",
                is_fundamentally_incompatible=True,
            )
        )
    else:
        criteria.append(
            SafeguardCriterion(
                objective=SafeguardObjective.CLIMATE_MITIGATION,
                objective_name=SafeguardObjective.CLIMATE_MITIGATION.display_name,
                status=SafeguardStatus.NO_HARM if has_reduction else SafeguardStatus.POTENTIAL_HARM,
                score=4 if has_reduction else 2,
                evidence="Emissions reduction targets present" if has_reduction else "Limited emissions information",
                recommendation="Quantify GHG reduction targets with verified baseline",
            )
        )

    # Climate adaptation
    has_adaptation = _contains_any(text, ("adapt", "resilien", "climate risk"))
    criteria.append(
        SafeguardCriterion(
            objective=SafeguardObjective.CLIMATE_ADAPTATION,
            objective_name=SafeguardObjective.CLIMATE_ADAPTATION.display_name,
            status=SafeguardStatus.NO_HARM if has_adaptation else SafeguardStatus.POTENTIAL_HARM,
            score=3 if has_adaptation else 2,
            evidence=(
                "Climate adaptation measures mentioned" if has_adaptation else "No explicit adaptation planning found"
            ),
            recommendation=(
                "Document specific adaptation measures"
                if has_adaptation
                else "Include climate risk assessment and adaptation plan"
            ),
        )
    )

    # Water resources
    water_intensive = project.sector in WATER_INTENSIVE_SECTORS
    has_water_measures = "water" in text and _contains_any(text, ("efficienc", "recycl", "conserv"))
    water_gap = water_intensive and not has_water_measures
    if has_water_measures:
        water_evidence = "Water management measures identified"
    elif water_intensive:
        water_evidence = "Water-intensive sector without clear water management"
    else:
        water_evidence = "Low water impact expected"
    criteria.append(
        SafeguardCriterion(
            objective=SafeguardObjective.WATER_RESOURCES,
            objective_name=SafeguardObjective.WATER_RESOURCES.display_name,
            status=SafeguardStatus.POTENTIAL_HARM if water_gap else SafeguardStatus.NO_HARM,
            score=2 if water_gap else 3,
            evidence=water_evidence,
            recommendation="Include water efficiency and recycling measures" if water_gap else None,
        )
    )

    # Circular economy
    has_circular = _contains_any(text, ("recycl", "waste", "circular", "reuse"))
    criteria.append(
        SafeguardCriterion(
            objective=SafeguardObjective.CIRCULAR_ECONOMY,
            objective_name=SafeguardObjective.CIRCULAR_ECONOMY.display_name,
            status=SafeguardStatus.NO_HARM if has_circular else SafeguardStatus.POTENTIAL_HARM,
            score=3 if has_circular else 2,
            evidence=(
                "Circular economy practices mentioned"
                if has_circular
                else "No waste management or recycling mentioned"
            ),
            recommendation=None if has_circular else "Include waste management and material efficiency plans",
        )
    )

    # Pollution prevention
    polluting = project.sector in POLLUTING_SECTORS
    has_pollution_control = _contains_any(text, ("emission control", "air quality")) or (
        "pollution" in text and "prevent" in text
    )
    pollution_gap = polluting and not has_pollution_control
    if has_pollution_control:
        pollution_evidence = "Pollution control measures identified"
    elif polluting:
        pollution_evidence = "Industrial activity without explicit pollution controls"
    else:
        pollution_evidence = "Low pollution risk expected"
    criteria.append(
        SafeguardCriterion(
            objective=SafeguardObjective.POLLUTION_PREVENTION,
            objective_name=SafeguardObjective.POLLUTION_PREVENTION.display_name,
            status=SafeguardStatus.POTENTIAL_HARM if pollution_gap else SafeguardStatus.NO_HARM,
            score=2 if pollution_gap else 3,
            evidence=pollution_evidence,
            recommendation="Document emission controls and pollution prevention measures" if pollution_gap else None,
        )
    )

    # Biodiversity
    has_biodiversity = _contains_any(
        text, ("biodiversity", "ecosystem", "protected area", "environmental impact")
    )
    if is_deforestation:
        criteria.append(
            SafeguardCriterion(
                objective=SafeguardObjective.BIODIVERSITY,
                objective_name=SafeguardObjective.BIODIVERSITY.display_name,
                status=SafeguardStatus.SIGNIFICANT_HARM,
                score=0,
                evidence="Deforestation or land clearing detected",
                concern="Land clearing causes significant ecosystem harm",
                is_fundamentally_incompatible=True,
            )
        )
    else:
        criteria.append(
            SafeguardCriterion(
                objective=SafeguardObjective.BIODIVERSITY,
                objective_name=SafeguardObjective.BIODIVERSITY.display_name,
                status=SafeguardStatus.NO_HARM if has_biodiversity else SafeguardStatus.NOT_ASSESSED,
                score=3 if has_biodiversity else 2,
                evidence=(
                    "Biodiversity considerations addressed" if has_biodiversity else "No biodiversity assessment found"
                ),
                recommendation=None if has_biodiversity else "Include environmental impact assessment",
            )
        )

    normalized_score = weighted_normalized_score(criteria, weights or get_sector_weights(project.sector))
    status = overall_status(criteria, normalized_score, incompatible)
    statuses = {c.status for c in criteria}
    has_significant = SafeguardStatus.SIGNIFICANT_HARM in statuses
    has_potential = SafeguardStatus.POTENTIAL_HARM in statuses

    if incompatible:
        summary = "Project type is fundamentally incompatible with EU Taxonomy DNSH requirements."
    elif has_significant:
        summary = "Significant environmental harm detected - requires major remediation."
    elif has_potential:
        summary = "Potential harm identified - improvements recommended for DNSH compliance."
    elif status == ComplianceStatus.PARTIAL:
        summary = "No harm detected but evidence is too thin to confirm DNSH compliance."
    else:
        summary = "No significant harm detected - project appears DNSH compliant."

    recommendations = [] if incompatible else [c.recommendation for c in criteria if c.recommendation]

    return SafeguardAssessment(
        overall_status=status,
        total_score=sum(c.score for c in criteria),
        normalized_score=normalized_score,
        criteria=criteria,
        summary=summary,
        key_risks=[c.concern for c in criteria if c.concern],
        recommendations=recommendations[:MAX_SAFEGUARD_FALLBACK_RECOMMENDATIONS],
        is_fundamentally_incompatible=incompatible,
        incompatibility_reason=incompatibility_reason,
        source="rules",
    )


class SafeguardEvaluator:
    """DNSH screen with an AI path and a deterministic fallback."""

    def __init__(
        self,
        gateway: ProviderGateway,
        weights: Optional[Callable[[Sector], SectorWeights]] = None,
    ):
        self.gateway = gateway
        self.weights = weights or get_sector_weights

    def evaluate(self, project: ProjectInput, document: str = "") -> SafeguardAssessment:
        """Never raises; falls back to the keyword screen on any AI-path failure."""
        try:
            assessment = self._evaluate_with_ai(project, document)
        except Exception as e:
            logger.error(f"Safeguard AI path raised {type(e).__name__}: {e}", exc_info=True)
            assessment = None

        if assessment is None:
            logger.info("Safeguard evaluation using rule-based fallback")
            return rule_based_assessment(project, document)
        return assessment

    def _evaluate_with_ai(self, project: ProjectInput, document: str) -> Optional[SafeguardAssessment]:
        response = self.gateway.call(
            load_prompt(SAFEGUARD_PROMPT).content,
            build_user_prompt(project, document),
            temperature=0.0,
            max_tokens=COMPONENT_MAX_TOKENS,
        )
        if not response.success:
            logger.warning(f"Safeguard gateway call failed: {response.error}")
            return None

        try:
            payload = parse_model_output(response.content, SafeguardPayload)
        except ResponseParseError as e:
            logger.warning(f"Safeguard output rejected: {e}")
            return None

        assessment = normalize_payload(payload, self.weights(project.sector))
        logger.info(
            f"Safeguard assessment: {assessment.overall_status.value} "
            f"({assessment.normalized_score}/100) via {response.provider}"
        )
        return assessment
