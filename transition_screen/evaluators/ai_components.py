"""
AI Component Evaluator - four independently scored greenwashing dimensions.

Each dimension is a versioned rubric prompt worth 25 points:
1. Claim Credibility - realism of reduction, timeline and cost claims
2. Document Consistency - numbers, narrative and baseline agree
3. Commitment Strength - specific, accountable, measurable commitments
4. Verification & Transparency - third-party verification and disclosure

Dimensions run concurrently, one gateway call each at temperature 0. A
dimension whose call fails, or whose output fails strict validation, is
dropped without retry; the aggregate is computed over the survivors.

    normalized_score = round_half_up(100 * sum(score) / (25 * n_ok))
"""

import json
import logging
from typing import Any, Optional

from transition_screen.constants import (
    COMPONENT_MAX_SCORE,
    COMPONENT_MAX_TOKENS,
    MAX_DOCUMENT_CHARS_COMPONENT,
    MAX_POSITIVE_FINDINGS,
    MAX_TOP_CONCERNS,
)
from transition_screen.llm.llm_client import ProviderGateway
from transition_screen.llm.prompt_loader import load_prompt
from transition_screen.llm.response_parser import ResponseParseError, parse_model_output
from transition_screen.schemas.common import AIRiskLevel, FindingStatus
from transition_screen.schemas.evaluation import AIResult, ComponentEvaluation, Dimension
from transition_screen.schemas.project import ProjectInput
from transition_screen.scorers.combiner import round_half_up
from transition_screen.utils.worker_pool import WorkerPool

logger = logging.getLogger(__name__)

# Every Dimension member must have a prompt file
DIMENSION_PROMPTS: dict[Dimension, str] = {
    Dimension.CLAIM_CREDIBILITY: "claim_credibility",
    Dimension.DOCUMENT_CONSISTENCY: "document_consistency",
    Dimension.COMMITMENT_STRENGTH: "commitment_strength",
    Dimension.VERIFICATION_ADEQUACY: "verification_adequacy",
}

FRAMEWORK_REFERENCES_PROMPT = "framework_references"
FRAMEWORK_PLACEHOLDER = "{framework_references}"

ALL_FAILED_SUMMARY = "AI greenwashing evaluation failed - using rule-based fallback"


def build_system_prompt(dimension: Dimension) -> str:
    """Rubric prompt for one dimension with the shared framework references filled in."""
    rubric = load_prompt(DIMENSION_PROMPTS[dimension])
    references = load_prompt(FRAMEWORK_REFERENCES_PROMPT)
    return rubric.content.replace(FRAMEWORK_PLACEHOLDER, references.content)


def project_prompt_data(project: ProjectInput) -> dict[str, Any]:
    """Project fields shared with the model, keyed the way the rubric prompts read them."""
    return {
        "projectName": project.project_name,
        "country": project.country,
        "sector": project.sector.value,
        "projectType": project.project_type,
        "description": project.description,
        "transitionStrategy": project.transition_strategy,
        "targetYear": project.target_year,
        "currentEmissions": project.current_emissions.model_dump(exclude_none=True),
        "targetEmissions": project.target_emissions.model_dump(exclude_none=True),
        "statedReductionPercent": project.stated_reduction_percent,
        "technology": project.technology,
        "totalCost": project.total_cost,
        "hasPublishedPlan": project.has_published_plan,
        "thirdPartyVerification": project.third_party_verification,
    }


def build_user_prompt(document: str, project: ProjectInput) -> str:
    return (
        "## Document Content (for analysis):\n"
        f"{document[:MAX_DOCUMENT_CHARS_COMPONENT]}\n\n"
        "## Project Data:\n"
        f"{json.dumps(project_prompt_data(project), indent=2)}\n\n"
        "Evaluate this document for greenwashing risk and return your analysis as JSON."
    )


def aggregate_components(
    components: list[ComponentEvaluation],
    dimensions_attempted: int,
) -> AIResult:
    """Combine successful dimension evaluations into one AIResult."""
    if not components:
        return AIResult.failed(ALL_FAILED_SUMMARY, dimensions_attempted=dimensions_attempted)

    total = sum(c.score for c in components)
    normalized_score = round_half_up(100 * total / (COMPONENT_MAX_SCORE * len(components)))
    confidence = round_half_up(sum(c.confidence for c in components) / len(components))
    risk_level = AIRiskLevel.from_score(normalized_score)

    top_concerns = [
        f"{c.component_name}: {f.concern}"
        for c in components
        for f in c.findings
        if f.status in (FindingStatus.WEAK, FindingStatus.MISSING) and f.concern
    ]
    positive_findings = [
        f"{f.criterion}: {f.evidence}" for c in components for f in c.findings if f.status == FindingStatus.STRONG
    ]

    summary = (
        f"AI greenwashing analysis: {normalized_score}/100 ({risk_level.value} risk). "
        f"Evaluated {len(components)}/{dimensions_attempted} components with {confidence}% average confidence."
    )

    return AIResult(
        success=True,
        normalized_score=normalized_score,
        risk_level=risk_level,
        confidence=confidence,
        components=components,
        summary=summary,
        top_concerns=top_concerns[:MAX_TOP_CONCERNS],
        positive_findings=positive_findings[:MAX_POSITIVE_FINDINGS],
        dimensions_attempted=dimensions_attempted,
    )


class AIComponentEvaluator:
    """Runs the dimension rubrics through the provider gateway."""

    def __init__(
        self,
        gateway: ProviderGateway,
        dimensions: tuple[Dimension, ...] = tuple(Dimension),
        max_workers: Optional[int] = None,
    ):
        missing = [d for d in dimensions if d not in DIMENSION_PROMPTS]
        if missing:
            raise ValueError(f"No rubric prompt for dimensions: {missing}")
        self.gateway = gateway
        self.dimensions = tuple(dimensions)
        self.max_workers = max_workers or max(1, len(self.dimensions))

    def evaluate_dimension(
        self,
        dimension: Dimension,
        document: str,
        project: ProjectInput,
    ) -> Optional[ComponentEvaluation]:
        """One gateway call for one dimension. None when the dimension is dropped."""
        response = self.gateway.call(
            build_system_prompt(dimension),
            build_user_prompt(document, project),
            temperature=0.0,
            max_tokens=COMPONENT_MAX_TOKENS,
        )
        if not response.success:
            logger.warning(f"{dimension.value}: gateway failed ({response.error}), dropping dimension")
            return None

        try:
            evaluation = parse_model_output(response.content, ComponentEvaluation)
        except ResponseParseError as e:
            logger.warning(f"{dimension.value}: {e}, dropping dimension")
            return None

        if evaluation.component != dimension:
            logger.warning(
                f"{dimension.value}: model answered for {evaluation.component.value}, dropping dimension"
            )
            return None

        logger.debug(f"{dimension.value}: {evaluation.score}/{COMPONENT_MAX_SCORE} via {response.provider}")
        return evaluation

    def evaluate(self, document: str, project: ProjectInput) -> AIResult:
        logger.info(f"Starting AI evaluation of {len(self.dimensions)} dimensions")
        pool = WorkerPool(max_workers=self.max_workers, logger=logger)
        results = pool.map(
            lambda dimension: self.evaluate_dimension(dimension, document, project),
            self.dimensions,
            desc="AI dimension evaluation",
        )

        components = [result for ok, _, result in results if ok and result is not None]
        ai_result = aggregate_components(components, dimensions_attempted=len(self.dimensions))
        if ai_result.success:
            logger.info(f"AI evaluation complete: {ai_result.normalized_score}/100, {ai_result.risk_level.value} risk")
        else:
            logger.warning("All AI dimension evaluations failed")
        return ai_result
