"""Score Combiner - merge rule and AI signals into one penalty (0-20).

Penalty curves (higher = worse):
    rule risk score (0-100, higher = more risk): >=70 -> 20, >=40 -> 10, >=20 -> 5, else 0
    AI score (0-100, higher = less risk):        >=80 -> 0, >=60 -> 3, >=40 -> 6, >=20 -> 12, else 20

Modes:
    rule   - rule penalty only
    ai     - AI penalty only
    hybrid - round_half_up(0.6 * ai + 0.4 * rule)

Any mode falls back to rule when no successful AI result is available.
The safeguard assessment is passed through and never affects the penalty.
"""

import logging
import math
from typing import Optional

from transition_screen.constants import (
    COMBINED_HIGH_PENALTY_THRESHOLD,
    COMBINED_MEDIUM_PENALTY_THRESHOLD,
    DEDUP_PREFIX_CHARS,
    HYBRID_AI_WEIGHT,
    HYBRID_RULE_WEIGHT,
    MAX_MERGED_ENTRIES,
)
from transition_screen.schemas.assessment import CombinedAssessment, RuleResult
from transition_screen.schemas.common import RiskLevel, ScoringMode
from transition_screen.schemas.evaluation import AIResult
from transition_screen.schemas.safeguard import SafeguardAssessment

logger = logging.getLogger(__name__)


def rule_penalty(risk_score: int) -> int:
    if risk_score >= 70:
        return 20
    if risk_score >= 40:
        return 10
    if risk_score >= 20:
        return 5
    return 0


def ai_penalty(normalized_score: int) -> int:
    if normalized_score >= 80:
        return 0
    if normalized_score >= 60:
        return 3
    if normalized_score >= 40:
        return 6
    if normalized_score >= 20:
        return 12
    return 20


def round_half_up(value: float) -> int:
    """Round .5 upward (Python's round() rounds half to even)."""
    return int(math.floor(value + 0.5))


def penalty_risk_level(penalty: int) -> RiskLevel:
    if penalty >= COMBINED_HIGH_PENALTY_THRESHOLD:
        return RiskLevel.HIGH
    if penalty >= COMBINED_MEDIUM_PENALTY_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def merge_unique(existing: list[str], candidates: list[str], prefix: str = "") -> list[str]:
    """Append candidates whose leading text is not already contained in an entry.

    A candidate is skipped when any existing entry contains the first 20
    lower-cased characters of the candidate.
    """
    merged = list(existing)
    for candidate in candidates:
        key = candidate.lower()[:DEDUP_PREFIX_CHARS]
        if any(key in entry.lower() for entry in merged):
            continue
        merged.append(f"{prefix}{candidate}")
    return merged


class ScoreCombiner:
    """Blends rule and AI penalties according to a scoring mode."""

    def __init__(self, mode: ScoringMode = ScoringMode.HYBRID):
        self.mode = ScoringMode(mode)

    def effective_mode(self, ai: Optional[AIResult]) -> ScoringMode:
        if self.mode == ScoringMode.RULE or ai is None or not ai.success:
            return ScoringMode.RULE
        return self.mode

    def combine(
        self,
        rule: RuleResult,
        ai: Optional[AIResult] = None,
        safeguard: Optional[SafeguardAssessment] = None,
    ) -> CombinedAssessment:
        effective = self.effective_mode(ai)
        rule_pen = rule_penalty(rule.risk_score)

        if effective == ScoringMode.RULE:
            if self.mode != ScoringMode.RULE:
                logger.info(f"No usable AI result, {self.mode.value} mode falling back to rule penalty")
            return CombinedAssessment(
                risk_level=penalty_risk_level(rule_pen),
                combined_penalty=rule_pen,
                configured_mode=self.mode,
                effective_mode=effective,
                ai_evaluation_used=False,
                rule_risk_score=rule.risk_score,
                rule_flags=rule.flags,
                safeguard_assessment=safeguard,
                recommendations=rule.recommendations[:MAX_MERGED_ENTRIES],
                positive_indicators=rule.positive_indicators[:MAX_MERGED_ENTRIES],
            )

        ai_pen = ai_penalty(ai.normalized_score)
        if effective == ScoringMode.AI:
            penalty = ai_pen
        else:
            penalty = round_half_up(HYBRID_AI_WEIGHT * ai_pen + HYBRID_RULE_WEIGHT * rule_pen)

        recommendations = merge_unique(rule.recommendations, ai.top_concerns, prefix="[AI] ")
        positives = merge_unique(rule.positive_indicators, ai.positive_findings)

        logger.info(
            f"AI: {ai.normalized_score}/100, rule risk: {rule.risk_score}, "
            f"{effective.value} penalty: {penalty}"
        )

        return CombinedAssessment(
            risk_level=penalty_risk_level(penalty),
            combined_penalty=penalty,
            configured_mode=self.mode,
            effective_mode=effective,
            ai_evaluation_used=True,
            rule_risk_score=rule.risk_score,
            rule_flags=rule.flags,
            ai_result=ai,
            safeguard_assessment=safeguard,
            recommendations=recommendations[:MAX_MERGED_ENTRIES],
            positive_indicators=positives[:MAX_MERGED_ENTRIES],
        )
