"""
Red Flag Detector - deterministic transition-finance screening rules.

Each rule is a pure predicate over a ProjectInput. All rules are evaluated
(no rule short-circuits another) and the fired flags, together with a set of
positive indicators, produce a 0-100 risk score where higher = more risk:

    risk_score = clamp(sum(severity weight) - 10 * positives, 0, 100)
    severity weights: high 25, medium 15, low 5

Rule groups:
1. Eligibility - fossil and coal activities excluded from transition taxonomies
2. Greenwashing - exaggerated, vague or unverifiable claims
3. Trajectory - baseline, target ambition and timeline checks
4. Document consistency - explicit contradictions stated in the source document

CRITICAL: No I/O and no model calls. The same project and reference year
always yield the same result.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from transition_screen.constants import (
    AMBITIOUS_REDUCTION_PERCENT,
    INTERIM_TARGET_YEAR,
    LATEST_ACCEPTABLE_TARGET_YEAR,
    MAX_MEDIUM_RECOMMENDATIONS,
    MAX_RISK_SCORE,
    MIN_2030_REDUCTION_PERCENT,
    MIN_ANNUAL_REDUCTION_PERCENT,
    MIN_DESCRIPTION_CHARS,
    POSITIVE_INDICATOR_CREDIT,
    RULE_HIGH_RISK_THRESHOLD,
    RULE_MEDIUM_RISK_THRESHOLD,
    SEVERITY_WEIGHTS,
)
from transition_screen.schemas.assessment import RedFlag, RuleResult
from transition_screen.schemas.common import MATERIAL_SCOPE3_SECTORS, FlagCategory, RiskLevel
from transition_screen.schemas.project import ProjectInput

from .report_prefilter import DOCUMENT_TEXT_RULES, ReportPrefilter

# =============================================================================
# Keyword tables
# =============================================================================

FOSSIL_TERMS = (
    "oil drilling",
    "oil exploration",
    "oil production",
    "offshore drilling",
    "petroleum",
    "natural gas extraction",
    "coal mining",
    "coal power",
    "coal plant",
    "barrels per day",
    "fossil fuel expansion",
    "new oil wells",
    "gas field",
)

LOCK_IN_TERMS = ("new coal", "coal expansion", "new diesel", "expand fossil", "new oil")

VAGUE_COMMITMENT_TERMS = ("aspire", "intend", "aim to", "explore", "consider", "may")
VAGUE_DESCRIPTION_TERMS = ("various", "to be determined", "tbd")

# "100% renewable" is legitimate; "100% reduction" is not
EXAGGERATED_REDUCTION_RE = re.compile(r"\b(99|100)\s*%\s*(reduction|decrease|cut)")
EXAGGERATED_TERMS = (
    "guaranteed return",
    "guaranteed profit",
    "guaranteed success",
    "risk-free",
    "zero cost",
    "no cost",
    "500%",
    "1000%",
    "unlimited return",
    "unlimited profit",
)
YEAR_RE = re.compile(r"\b20\d{2}\b")

SECRET_METHOD_TERMS = (
    "secret formula",
    "secret method",
    "confidential methodology",
    "proprietary methodology",
    "proprietary calculation",
    "proprietary data",
)
VERIFICATION_COMMITMENT_TERMS = (
    "third-party verification",
    "independent auditor",
    "dnv",
    "kpmg",
    "annual verification",
    "second party opinion",
)
COMPLETED_VERIFICATION_TERMS = (
    "third-party verification has been completed",
    "third party verification has been completed",
    "independent verifier confirming",
    "verified by dnv",
    "verified by kpmg",
    "verified by ey",
    "verified by deloitte",
)

INCONSISTENCY_TERMS = (
    "document contains inconsistenc",
    "document has inconsistenc",
    "found inconsistenc",
    "identified inconsistenc",
    "noted discrepanc",
    "contains discrepanc",
    "figures contradict",
    "numbers contradict",
    "data contradicts",
)
MATH_ISSUE_TERMS = (
    "mathematically impossible",
    "does not add up",
    "numbers do not match",
    "figures do not match",
)
CONSISTENCY_COMMITMENT_TERMS = (
    "ensure consistenc",
    "maintain consistenc",
    "address any inconsistenc",
    "resolve any inconsistenc",
    "prevent inconsistenc",
)

OWNERSHIP_TERMS = ("ownership", "equity", "stake", "shareholding")
OWNERSHIP_OVERFLOW_TERMS = ("115%", "120%", "totals exceed 100")

UNVERIFIABLE_TERMS = (
    "audit cannot be verified",
    "verification cannot be confirmed",
    "certification cannot be verified",
    "credentials cannot be verified",
    "auditor has no online presence",
    "verifier has no online presence",
    "no record of certification",
    "certification not found",
    "unverifiable audit",
    "unverifiable certification",
)
PENDING_VERIFICATION_TERMS = (
    "verification will be",
    "verification to be",
    "audit will be",
    "certification pending",
)

CONFLICT_TERMS = (
    "however, the document states",
    "however, it claims",
    "but states a different",
    "contradicts the stated",
    "does not match the stated",
    "inconsistent with stated",
    "differs from the claimed",
)

# Mentions of artisanal mining inside due diligence language do not count
ARTISANAL_DUE_DILIGENCE_TERMS = (
    "no artisanal",
    "not artisanal",
    "avoid artisanal",
    "exclude artisanal",
    "prohibit artisanal",
    "prevent artisanal",
    "free from artisanal",
    "does not involve artisanal",
    "does not include artisanal",
    "does not source from artisanal",
    "does not use artisanal",
    "ensure no artisanal",
    "ensures no artisanal",
    "ensuring no artisanal",
    "without artisanal",
    "zero artisanal",
    "eliminate artisanal",
    "artisanal mining risk",
    "artisanal mining due diligence",
    "artisanal mining standards",
    "artisanal mining compliance",
    "oecd due diligence",
    "responsible mineral",
    "conflict-free",
    "traceability",
    "supply chain due diligence",
)

DRC_COBALT_TERMS = ("drc cobalt", "congolese cobalt", "cobalt from drc", "cobalt from congo")
DRC_NEGATION_TERMS = ("not from drc", "not from congo", "no drc", "avoid drc")

HIGH_RISK_ADVISORIES = (
    "Consider engaging transition finance advisor before proceeding",
    "Significant improvements needed before DFI submission",
)
MEDIUM_RISK_ADVISORIES = ("Address key concerns to strengthen transition credentials",)


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


# =============================================================================
# Trajectory helpers
# =============================================================================


def operational_reduction_percent(project: ProjectInput) -> Optional[float]:
    """Percent reduction from current to target Scope 1+2.

    Returns None when there is no baseline to divide by.
    """
    current = project.current_emissions.operational_total
    if current <= 0:
        return None
    target = project.target_emissions.operational_total
    return (current - target) / current * 100


def has_completed_verification(project: ProjectInput) -> bool:
    """Explicit statement that third-party verification is done (flag or text)."""
    if project.third_party_verification:
        return True
    text = project.document_or_narrative_text()
    if _contains_any(text, COMPLETED_VERIFICATION_TERMS):
        return True
    if "spo" in text and "completed" in text:
        return True
    return "second party opinion" in text and "obtained" in text


# =============================================================================
# Rule predicates
# =============================================================================


def _fossil_sector(project: ProjectInput, reference_year: int) -> bool:
    return _contains_any(project.narrative_text(include_type=True), FOSSIL_TERMS)


def _coal_project(project: ProjectInput, reference_year: int) -> bool:
    text = f"{project.description} {project.project_type}".lower()
    return "coal" in text and _contains_any(text, ("power", "plant", "generation", "mining"))


def _exaggerated_claims(project: ProjectInput, reference_year: int) -> bool:
    text = project.narrative_text()
    return bool(EXAGGERATED_REDUCTION_RE.search(text)) or _contains_any(text, EXAGGERATED_TERMS)


def _proprietary_unverified(project: ProjectInput, reference_year: int) -> bool:
    # "proprietary EcoMax technology" is a product name, not an unverified claim
    if not _contains_any(project.narrative_text(), SECRET_METHOD_TERMS):
        return False
    if project.third_party_verification:
        return False
    return not _contains_any(project.document_or_narrative_text(), VERIFICATION_COMMITMENT_TERMS)


def _vague_description(project: ProjectInput, reference_year: int) -> bool:
    if len(project.description) < MIN_DESCRIPTION_CHARS:
        return True
    return _contains_any(project.description.lower(), VAGUE_DESCRIPTION_TERMS)


def _missing_financials(project: ProjectInput, reference_year: int) -> bool:
    return project.total_cost == 0 or (project.debt_amount == 0 and project.equity_amount == 0)


def _vague_commitment(project: ProjectInput, reference_year: int) -> bool:
    strategy = project.transition_strategy.lower()
    return _contains_any(strategy, VAGUE_COMMITMENT_TERMS) and not YEAR_RE.search(strategy)


def _no_timeline(project: ProjectInput, reference_year: int) -> bool:
    return project.target_year == 0 or project.target_year > LATEST_ACCEPTABLE_TARGET_YEAR


def _no_published_plan(project: ProjectInput, reference_year: int) -> bool:
    return not project.has_published_plan


def _missing_scope3(project: ProjectInput, reference_year: int) -> bool:
    return project.sector in MATERIAL_SCOPE3_SECTORS and not project.current_emissions.scope3


def _below_bau(project: ProjectInput, reference_year: int) -> bool:
    reduction = operational_reduction_percent(project)
    # A missing target year is reported by no_timeline
    if reduction is None or project.target_year == 0:
        return False
    years_to_target = project.target_year - reference_year
    if years_to_target == 0:
        # Target due this year: only an increase reads as below business-as-usual
        return reduction < 0
    return reduction / years_to_target < MIN_ANNUAL_REDUCTION_PERCENT


def _weak_targets(project: ProjectInput, reference_year: int) -> bool:
    reduction = operational_reduction_percent(project)
    if reduction is None:
        return False
    return 0 < project.target_year <= INTERIM_TARGET_YEAR and reduction < MIN_2030_REDUCTION_PERCENT


def _no_verification(project: ProjectInput, reference_year: int) -> bool:
    return not has_completed_verification(project)


def _fossil_lockin(project: ProjectInput, reference_year: int) -> bool:
    return _contains_any(project.description.lower(), LOCK_IN_TERMS)


def _missing_baseline(project: ProjectInput, reference_year: int) -> bool:
    return project.current_emissions.scope1 == 0 and project.current_emissions.scope2 == 0


def _explicit_inconsistency(project: ProjectInput, reference_year: int) -> bool:
    text = project.document_or_narrative_text()
    if not (_contains_any(text, INCONSISTENCY_TERMS) or _contains_any(text, MATH_ISSUE_TERMS)):
        return False
    return not _contains_any(text, CONSISTENCY_COMMITMENT_TERMS)


def _unrealistic_payback(project: ProjectInput, reference_year: int) -> bool:
    text = project.document_or_narrative_text()
    return "payback" in text and "year" in text and _contains_any(text, ("impossible", "unrealistic"))


def _ownership_exceeds_100(project: ProjectInput, reference_year: int) -> bool:
    text = project.document_or_narrative_text()
    return _contains_any(text, OWNERSHIP_TERMS) and _contains_any(text, OWNERSHIP_OVERFLOW_TERMS)


def _unverifiable_verification(project: ProjectInput, reference_year: int) -> bool:
    text = project.document_or_narrative_text()
    return _contains_any(text, UNVERIFIABLE_TERMS) and not _contains_any(text, PENDING_VERIFICATION_TERMS)


def _conflicting_numbers(project: ProjectInput, reference_year: int) -> bool:
    return _contains_any(project.document_or_narrative_text(), CONFLICT_TERMS)


def _artisanal_mining_risk(project: ProjectInput, reference_year: int) -> bool:
    text = project.document_or_narrative_text(include_type=True)
    if not ("artisanal" in text and "mining" in text):
        return False
    return not _contains_any(text, ARTISANAL_DUE_DILIGENCE_TERMS)


def _cobalt_drc_risk(project: ProjectInput, reference_year: int) -> bool:
    # Company names like "Kinshasa Mining" alone must not trigger; sourcing must be explicit
    text = project.document_or_narrative_text(include_type=True)
    if "cobalt" not in text:
        return False
    explicit = _contains_any(text, DRC_COBALT_TERMS) or (
        "cobalt sourced from" in text and ("drc" in text or "congo" in text)
    )
    return explicit and not _contains_any(text, DRC_NEGATION_TERMS)


# =============================================================================
# Rule table
# =============================================================================


@dataclass(frozen=True)
class RedFlagRule:
    """A single screening rule and the flag it raises."""

    id: str
    category: FlagCategory
    severity: RiskLevel
    predicate: Callable[[ProjectInput, int], bool]
    description: str
    recommendation: str

    def to_flag(self) -> RedFlag:
        return RedFlag(
            id=self.id,
            category=self.category,
            severity=self.severity,
            description=self.description,
            recommendation=self.recommendation,
        )


RULES: tuple[RedFlagRule, ...] = (
    # Eligibility (immediate disqualification)
    RedFlagRule(
        "fossil_sector",
        FlagCategory.TECHNOLOGY,
        RiskLevel.HIGH,
        _fossil_sector,
        "Project involves fossil fuel extraction/expansion - NOT ELIGIBLE for transition finance",
        "Fossil fuel expansion projects cannot be financed under transition frameworks",
    ),
    RedFlagRule(
        "coal_project",
        FlagCategory.TECHNOLOGY,
        RiskLevel.HIGH,
        _coal_project,
        "Coal projects are explicitly excluded from all transition taxonomies",
        "Coal cannot be financed under any legitimate green/transition framework",
    ),
    # Greenwashing
    RedFlagRule(
        "exaggerated_claims",
        FlagCategory.AMBITION,
        RiskLevel.HIGH,
        _exaggerated_claims,
        "Exaggerated or unrealistic claims detected - potential greenwashing",
        "Remove exaggerated claims and provide realistic, verifiable projections",
    ),
    RedFlagRule(
        "proprietary_unverified",
        FlagCategory.VERIFICATION,
        RiskLevel.HIGH,
        _proprietary_unverified,
        "Claims based on proprietary/secret methodology without independent verification",
        "Provide third-party verification for all technology and emissions claims",
    ),
    RedFlagRule(
        "vague_description",
        FlagCategory.COMMITMENT,
        RiskLevel.MEDIUM,
        _vague_description,
        "Project description is too vague or incomplete",
        "Provide detailed project description with specific activities and expected outcomes",
    ),
    RedFlagRule(
        "missing_financials",
        FlagCategory.COMMITMENT,
        RiskLevel.MEDIUM,
        _missing_financials,
        "Missing or incomplete financial information",
        "Provide detailed project costs and financing structure",
    ),
    RedFlagRule(
        "vague_commitment",
        FlagCategory.COMMITMENT,
        RiskLevel.HIGH,
        _vague_commitment,
        "Vague commitments without specific timelines",
        "Add specific, time-bound targets with measurable milestones",
    ),
    RedFlagRule(
        "no_timeline",
        FlagCategory.COMMITMENT,
        RiskLevel.MEDIUM,
        _no_timeline,
        "Missing or unreasonably distant target timeline",
        "Set target year aligned with Paris Agreement (2030 interim, 2050 net-zero)",
    ),
    RedFlagRule(
        "no_published_plan",
        FlagCategory.COMMITMENT,
        RiskLevel.HIGH,
        _no_published_plan,
        "No published transition plan or strategy",
        "Publish entity-level transition strategy aligned with science-based pathways",
    ),
    RedFlagRule(
        "missing_scope3",
        FlagCategory.SCOPE,
        RiskLevel.HIGH,
        _missing_scope3,
        "Missing Scope 3 emissions for sector where they are likely material",
        "Conduct Scope 3 assessment - likely represents significant portion of footprint",
    ),
    # Trajectory
    RedFlagRule(
        "below_bau",
        FlagCategory.AMBITION,
        RiskLevel.HIGH,
        _below_bau,
        "Target trajectory appears below business-as-usual",
        "Increase ambition - current targets may be achieved through normal efficiency gains",
    ),
    RedFlagRule(
        "weak_targets",
        FlagCategory.AMBITION,
        RiskLevel.MEDIUM,
        _weak_targets,
        "Reduction target insufficient for 2030 milestone",
        "SBTi requires ~42% reduction by 2030 for 1.5°C alignment",
    ),
    RedFlagRule(
        "no_verification",
        FlagCategory.VERIFICATION,
        RiskLevel.MEDIUM,
        _no_verification,
        "No third-party verification of transition claims",
        "Engage independent verifier (SBTi, second-party opinion, or assurance provider)",
    ),
    RedFlagRule(
        "fossil_lockin",
        FlagCategory.TECHNOLOGY,
        RiskLevel.HIGH,
        _fossil_lockin,
        "Project may lock in carbon-intensive infrastructure",
        "Avoid investments in assets with >20 year life that lock in fossil fuels",
    ),
    RedFlagRule(
        "missing_baseline",
        FlagCategory.BASELINE,
        RiskLevel.HIGH,
        _missing_baseline,
        "No baseline emissions data provided",
        "Establish robust emissions baseline with third-party verification",
    ),
    # Document consistency (reads raw document text when present)
    RedFlagRule(
        "explicit_inconsistency",
        FlagCategory.VERIFICATION,
        RiskLevel.HIGH,
        _explicit_inconsistency,
        "Document contains explicit inconsistencies or contradictions",
        "Resolve all internal inconsistencies before submitting - this is a major red flag for DFIs",
    ),
    RedFlagRule(
        "unrealistic_payback",
        FlagCategory.COMMITMENT,
        RiskLevel.HIGH,
        _unrealistic_payback,
        "Financial projections appear unrealistic or impossible",
        "Provide realistic financial model with achievable repayment schedule",
    ),
    RedFlagRule(
        "ownership_exceeds_100",
        FlagCategory.VERIFICATION,
        RiskLevel.HIGH,
        _ownership_exceeds_100,
        "Ownership structure or allocations exceed 100%",
        "Correct ownership/allocation errors - fundamental data integrity issue",
    ),
    RedFlagRule(
        "unverifiable_verification",
        FlagCategory.VERIFICATION,
        RiskLevel.HIGH,
        _unverifiable_verification,
        "Claimed verification or certification cannot be verified",
        "Provide verifiable third-party credentials from recognized auditors (DNV, KPMG, EY, etc.)",
    ),
    RedFlagRule(
        "conflicting_numbers",
        FlagCategory.BASELINE,
        RiskLevel.HIGH,
        _conflicting_numbers,
        "Conflicting emissions or reduction figures within document",
        "Ensure all emissions figures are consistent throughout the document",
    ),
    RedFlagRule(
        "artisanal_mining_risk",
        FlagCategory.TECHNOLOGY,
        RiskLevel.MEDIUM,
        _artisanal_mining_risk,
        "Artisanal mining operations carry elevated ESG and supply chain risks",
        "Demonstrate compliance with OECD Due Diligence Guidance for responsible mineral supply chains",
    ),
    RedFlagRule(
        "cobalt_drc_risk",
        FlagCategory.TECHNOLOGY,
        RiskLevel.MEDIUM,
        _cobalt_drc_risk,
        "DRC cobalt mining has high ESG risk (child labor, conflict minerals)",
        "Demonstrate full supply chain traceability and compliance with responsible mining standards",
    ),
)


# =============================================================================
# Positive indicators
# =============================================================================


def _is_ambitious(project: ProjectInput) -> bool:
    reduction = operational_reduction_percent(project)
    return reduction is not None and reduction >= AMBITIOUS_REDUCTION_PERCENT


POSITIVE_CHECKS: tuple[tuple[str, Callable[[ProjectInput], bool]], ...] = (
    ("Published transition strategy exists", lambda p: p.has_published_plan),
    ("Third-party verification in place", has_completed_verification),
    (
        "Aligned with science-based targets",
        lambda p: _contains_any(p.transition_strategy.lower(), ("sbti", "science-based")),
    ),
    (
        "References Paris Agreement alignment",
        lambda p: _contains_any(p.transition_strategy.lower(), ("paris", "1.5")),
    ),
    ("Ambitious reduction target (>42%)", _is_ambitious),
    ("Scope 3 emissions measured", lambda p: bool(p.current_emissions.scope3)),
    ("Near-term target year (by 2030)", lambda p: 0 < p.target_year <= INTERIM_TARGET_YEAR),
)


# =============================================================================
# Scoring
# =============================================================================


def calculate_risk_score(flags: list[RedFlag], positive_indicators: list[str]) -> int:
    """Severity-weighted flag total minus positive credit, clamped to 0-100."""
    score = sum(SEVERITY_WEIGHTS[flag.severity.value] for flag in flags)
    score -= len(positive_indicators) * POSITIVE_INDICATOR_CREDIT
    return max(0, min(MAX_RISK_SCORE, score))


def risk_level_for_score(risk_score: int) -> RiskLevel:
    if risk_score >= RULE_HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if risk_score >= RULE_MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def generate_recommendations(flags: list[RedFlag], overall_risk: RiskLevel) -> list[str]:
    """Critical items first, then a few medium items, then level advisories."""
    recommendations = [f"[CRITICAL] {f.recommendation}" for f in flags if f.severity == RiskLevel.HIGH]
    medium = [f.recommendation for f in flags if f.severity == RiskLevel.MEDIUM]
    recommendations.extend(medium[:MAX_MEDIUM_RECOMMENDATIONS])

    if overall_risk == RiskLevel.HIGH:
        recommendations.extend(HIGH_RISK_ADVISORIES)
    elif overall_risk == RiskLevel.MEDIUM:
        recommendations.extend(MEDIUM_RISK_ADVISORIES)
    return recommendations


class RedFlagDetector:
    """Evaluates the rule table and positive indicators for one project.

    reference_year anchors the years-to-target calculation. It is fixed at
    construction so repeated calls on one detector are deterministic.
    """

    def __init__(
        self,
        reference_year: Optional[int] = None,
        rules: tuple[RedFlagRule, ...] = RULES,
        prefilter: Optional[ReportPrefilter] = None,
    ):
        self.reference_year = reference_year if reference_year is not None else date.today().year
        self.rules = rules
        self.prefilter = prefilter if prefilter is not None else ReportPrefilter()

    def _fired(self, project: ProjectInput) -> list[RedFlagRule]:
        return [rule for rule in self.rules if rule.predicate(project, self.reference_year)]

    def detect(self, project: ProjectInput) -> RuleResult:
        scan_project = project
        suppressed: list[str] = []
        prefilter_applied = self.prefilter.is_generated_report(project.raw_document_text)

        if prefilter_applied:
            # Evaluate document-text rules against the narrative fields only
            scan_project = project.model_copy(update={"raw_document_text": None})
            on_document = {r.id for r in self._fired(project) if r.id in DOCUMENT_TEXT_RULES}
            on_narrative = {r.id for r in self._fired(scan_project)}
            suppressed = [r.id for r in self.rules if r.id in on_document - on_narrative]

        flags = [rule.to_flag() for rule in self._fired(scan_project)]
        positives = [label for label, check in POSITIVE_CHECKS if check(scan_project)]

        risk_score = calculate_risk_score(flags, positives)
        overall_risk = risk_level_for_score(risk_score)

        return RuleResult(
            flags=flags,
            positive_indicators=positives,
            risk_score=risk_score,
            overall_risk=overall_risk,
            recommendations=generate_recommendations(flags, overall_risk),
            suppressed_flag_ids=suppressed,
            prefilter_applied=prefilter_applied,
        )


def detect_red_flags(project: ProjectInput, reference_year: Optional[int] = None) -> RuleResult:
    """Convenience wrapper: run a fresh detector over one project."""
    return RedFlagDetector(reference_year=reference_year).detect(project)
