"""
Assessment engine - orchestrates one screening request.

Flow:
1. Rule detector (synchronous, cannot fail)
2. AI component evaluator and safeguard evaluator, concurrently
3. Score combiner -> CombinedAssessment

The AI branch is skipped in rule mode and for documents shorter than the
configured minimum. In rule mode the safeguard uses its keyword screen so no
provider is contacted at all. Unexpected failures in either concurrent
branch are logged and degrade to the rule-only result; assess() always
returns a valid CombinedAssessment.

Usage:
    from transition_screen.engine import AssessmentEngine

    engine = AssessmentEngine(load_config())
    result = engine.assess(project, document_text)
    print(result.to_dict())
"""

import logging
import time
from typing import Optional

from transition_screen.config import ScreeningConfig, load_config
from transition_screen.evaluators.ai_components import AIComponentEvaluator
from transition_screen.evaluators.safeguard import SafeguardEvaluator, rule_based_assessment
from transition_screen.llm.llm_client import ProviderGateway
from transition_screen.schemas.assessment import CombinedAssessment
from transition_screen.schemas.common import ScoringMode
from transition_screen.schemas.evaluation import AIResult
from transition_screen.schemas.project import ProjectInput
from transition_screen.schemas.safeguard import SafeguardAssessment
from transition_screen.scorers.combiner import ScoreCombiner
from transition_screen.scorers.red_flags import RedFlagDetector
from transition_screen.utils.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class AssessmentEngine:
    """Request-scoped orchestration of rules, AI evaluation and safeguard screening."""

    def __init__(
        self,
        config: Optional[ScreeningConfig] = None,
        gateway: Optional[ProviderGateway] = None,
        detector: Optional[RedFlagDetector] = None,
        ai_evaluator: Optional[AIComponentEvaluator] = None,
        safeguard_evaluator: Optional[SafeguardEvaluator] = None,
    ):
        self.config = config or load_config()
        self.gateway = gateway or ProviderGateway(
            self.config.providers,
            timeout_seconds=self.config.timeout_seconds,
            seed=self.config.seed,
        )
        self.detector = detector or RedFlagDetector()
        self.ai_evaluator = ai_evaluator or AIComponentEvaluator(self.gateway)
        self.safeguard_evaluator = safeguard_evaluator or SafeguardEvaluator(self.gateway)
        self.combiner = ScoreCombiner(self.config.scoring_mode)

    @property
    def mode(self) -> ScoringMode:
        return self.config.scoring_mode

    def should_run_ai(self, document: str) -> bool:
        if self.mode == ScoringMode.RULE:
            return False
        if len(document) < self.config.min_document_chars:
            logger.info(
                f"Document has {len(document)} chars (< {self.config.min_document_chars}), using rule-based only"
            )
            return False
        return True

    def assess(self, project: ProjectInput, document: Optional[str] = None) -> CombinedAssessment:
        """Screen one project. `document` defaults to the project's raw document text."""
        start = time.monotonic()
        if document is None:
            document = project.raw_document_text or ""

        rule_result = self.detector.detect(project)
        logger.info(
            f"Rules: {len(rule_result.flags)} flags, risk score {rule_result.risk_score} "
            f"({rule_result.overall_risk.value})"
        )

        if self.mode == ScoringMode.RULE:
            ai_result = None
            safeguard = rule_based_assessment(project, document)
        else:
            ai_result, safeguard = self._run_concurrent(project, document)

        result = self.combiner.combine(rule_result, ai_result, safeguard)
        logger.info(
            f"Assessment complete for '{project.project_name}': {result.risk_level.value} risk, "
            f"penalty {result.combined_penalty} ({result.effective_mode.value}) "
            f"in {time.monotonic() - start:.2f}s"
        )
        return result

    def _run_concurrent(
        self, project: ProjectInput, document: str
    ) -> tuple[Optional[AIResult], SafeguardAssessment]:
        run_ai = self.should_run_ai(document)

        with WorkerPool(max_workers=2, logger=logger) as pool:
            ai_future = pool.submit(self.ai_evaluator.evaluate, document, project) if run_ai else None
            safeguard_future = pool.submit(self.safeguard_evaluator.evaluate, project, document)

            ai_result = None
            if ai_future is not None:
                try:
                    ai_result = ai_future.result()
                except Exception as e:
                    logger.error(f"AI evaluation raised {type(e).__name__}: {e}", exc_info=True)

            try:
                safeguard = safeguard_future.result()
            except Exception as e:
                logger.error(f"Safeguard evaluation raised {type(e).__name__}: {e}", exc_info=True)
                safeguard = rule_based_assessment(project, document)

        return ai_result, safeguard
