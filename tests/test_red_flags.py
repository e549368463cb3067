"""Tests for the rule-based red flag detector and the report pre-filter.

Risk score = sum(severity weight) - 10 * positives, clamped to 0-100.
"""

import pytest

from transition_screen.schemas.assessment import RedFlag
from transition_screen.schemas.common import FlagCategory, RiskLevel, Sector
from transition_screen.schemas.project import EmissionsData, ProjectInput
from transition_screen.scorers.red_flags import (
    HIGH_RISK_ADVISORIES,
    MEDIUM_RISK_ADVISORIES,
    RULES,
    RedFlagDetector,
    calculate_risk_score,
    detect_red_flags,
    generate_recommendations,
    operational_reduction_percent,
    risk_level_for_score,
)
from transition_screen.scorers.report_prefilter import DOCUMENT_TEXT_RULES, ReportPrefilter

REFERENCE_YEAR = 2025

# ─── Helpers ──────────────────────────────────────────────────────────────────


def _detect(project: ProjectInput):
    return RedFlagDetector(reference_year=REFERENCE_YEAR).detect(project)


def _flag(severity: RiskLevel, flag_id: str = "test_flag") -> RedFlag:
    return RedFlag(
        id=flag_id,
        category=FlagCategory.COMMITMENT,
        severity=severity,
        description=f"{flag_id} description",
        recommendation=f"Fix {flag_id}",
    )


GENERATED_REPORT = """Transition Eligibility Assessment
Greenwashing Risk: HIGH
Red flags identified:
- [CRITICAL] Document contains inconsistencies between baseline and target tables
- Audit cannot be verified against the auditor registry
"""


# ─── Rule table ──────────────────────────────────────────────────────────────


class TestRuleTable:
    """Static properties of the ordered rule table."""

    def test_rule_ids_unique(self):
        """Every rule has a distinct id."""
        ids = [rule.id for rule in RULES]
        assert len(ids) == len(set(ids))

    def test_document_text_rules_exist(self):
        """Pre-filter rule ids all refer to real rules."""
        assert DOCUMENT_TEXT_RULES <= {rule.id for rule in RULES}


# ─── Scenarios ───────────────────────────────────────────────────────────────


class TestScenarios:
    """End-to-end detector behavior on representative projects."""

    def test_clean_project(self, clean_project):
        """Well-documented solar project → no flags, low risk, six positives."""
        result = _detect(clean_project)
        assert result.flags == []
        assert result.risk_score == 0
        assert result.overall_risk == RiskLevel.LOW
        assert len(result.positive_indicators) == 6
        assert result.recommendations == []

    def test_coal_power_plant_in_mining_sector(self):
        """Mining project describing a coal power plant → high-severity coal_project, risk >= 25."""
        project = ProjectInput(
            project_name="Hwange Extension",
            country="Zimbabwe",
            sector=Sector.MINING,
            description="Upgrade of the coal power plant at the Hwange colliery to extend its operating life.",
            target_year=2040,
        )
        result = _detect(project)

        coal = next(f for f in result.flags if f.id == "coal_project")
        assert coal.severity == RiskLevel.HIGH
        assert coal.category == FlagCategory.TECHNOLOGY
        assert result.risk_score >= 25
        assert "fossil_sector" in result.flag_ids

    def test_no_plan_no_verification_zero_emissions(self, project_factory):
        """No plan, no verification, all-zero emissions → three flags and no positives."""
        project = project_factory(
            has_published_plan=False,
            third_party_verification=False,
            current_emissions=EmissionsData(),
            target_emissions=EmissionsData(),
            target_year=2040,
            transition_strategy="Replace diesel generators with solar and storage across all sites by 2040.",
        )
        result = _detect(project)

        for flag_id in ("no_published_plan", "no_verification", "missing_baseline"):
            assert flag_id in result.flag_ids
        assert result.positive_indicators == []

    def test_no_plan_no_verification_zero_emissions_no_target_year(self, project_factory):
        """Same scenario with the target year left unset → no_timeline and still no positives."""
        project = project_factory(
            has_published_plan=False,
            third_party_verification=False,
            current_emissions=EmissionsData(),
            target_emissions=EmissionsData(),
            target_year=0,
            transition_strategy="Replace diesel generators with solar and storage across all sites.",
        )
        result = _detect(project)

        for flag_id in ("no_published_plan", "no_verification", "missing_baseline", "no_timeline"):
            assert flag_id in result.flag_ids
        assert result.positive_indicators == []

    def test_all_rules_evaluated(self, project_factory):
        """Rules don't short-circuit: fossil exclusion and commitment gaps fire together."""
        project = project_factory(
            description="New oil wells and offshore drilling in the coastal basin for export markets.",
            has_published_plan=False,
        )
        result = _detect(project)
        assert {"fossil_sector", "fossil_lockin", "no_published_plan"} <= set(result.flag_ids)

    def test_flags_follow_rule_order(self, project_factory):
        """Flags are reported in rule-table order."""
        project = project_factory(
            description="Various works",
            has_published_plan=False,
            third_party_verification=False,
        )
        order = [rule.id for rule in RULES]
        ids = _detect(project).flag_ids
        assert ids == sorted(ids, key=order.index)


# ─── Individual rules ────────────────────────────────────────────────────────


class TestGreenwashingRules:
    """Claim, commitment and verification rules."""

    def test_exaggerated_reduction(self, project_factory):
        """'100% reduction' is an exaggerated claim."""
        project = project_factory(transition_strategy="Delivers a 100% reduction in emissions by 2030.")
        assert "exaggerated_claims" in _detect(project).flag_ids

    def test_hundred_percent_renewable_is_legitimate(self, project_factory):
        """'100% renewable' is not flagged."""
        project = project_factory(transition_strategy="Moves to 100% renewable supply by 2030 under SBTi.")
        assert "exaggerated_claims" not in _detect(project).flag_ids

    def test_guaranteed_returns(self, project_factory):
        """Guaranteed returns are exaggerated."""
        project = project_factory(
            description="Solar farm with guaranteed returns for all investors over twenty years of operation."
        )
        assert "exaggerated_claims" in _detect(project).flag_ids

    def test_vague_commitment_without_year(self, project_factory):
        """Modal language without any year → vague_commitment."""
        project = project_factory(transition_strategy="We aim to decarbonise operations over time.")
        assert "vague_commitment" in _detect(project).flag_ids

    def test_vague_commitment_with_year(self, project_factory):
        """Same language anchored to a year is not vague."""
        project = project_factory(transition_strategy="We aim to decarbonise operations by 2035.")
        assert "vague_commitment" not in _detect(project).flag_ids

    def test_short_description(self, project_factory):
        """Description under 50 chars → vague_description."""
        assert "vague_description" in _detect(project_factory(description="Solar plant")).flag_ids

    def test_missing_financials(self, project_factory):
        """No debt and no equity → missing_financials."""
        project = project_factory(debt_amount=0, equity_amount=0)
        assert "missing_financials" in _detect(project).flag_ids

    def test_proprietary_methodology_unverified(self, project_factory):
        """Secret methodology without verification or commitment → proprietary_unverified."""
        project = project_factory(
            description="Emission savings are computed with our proprietary methodology across all three sites.",
            third_party_verification=False,
        )
        assert "proprietary_unverified" in _detect(project).flag_ids

    def test_proprietary_product_name_ignored(self, project_factory):
        """A proprietary technology name is not a methodology claim."""
        project = project_factory(
            description="Deployment of proprietary EcoMax inverters across a 50 MW solar plant in Turkana.",
            third_party_verification=False,
        )
        assert "proprietary_unverified" not in _detect(project).flag_ids

    def test_verification_stated_in_document(self, project_factory):
        """Completed verification stated in the document satisfies no_verification."""
        project = project_factory(
            third_party_verification=False,
            raw_document_text="The baseline was verified by DNV in March.",
        )
        assert "no_verification" not in _detect(project).flag_ids


class TestTrajectoryRules:
    """Baseline, ambition and timeline checks."""

    def test_reduction_percent(self, clean_project):
        """(120k - 60k) / 120k = 50%."""
        assert operational_reduction_percent(clean_project) == pytest.approx(50.0)

    def test_reduction_percent_without_baseline(self, project_factory):
        """Zero baseline → None, never a division error."""
        project = project_factory(current_emissions=EmissionsData())
        assert operational_reduction_percent(project) is None

    def test_below_bau(self, project_factory):
        """5% over 10 years is 0.5%/yr → below_bau."""
        project = project_factory(
            target_emissions=EmissionsData(scope1=95_000, scope2=19_000),
            target_year=2035,
        )
        assert "below_bau" in _detect(project).flag_ids

    def test_below_bau_target_this_year(self, project_factory):
        """Target due this year with a reduction is not below business-as-usual."""
        project = project_factory(target_year=REFERENCE_YEAR)
        assert "below_bau" not in _detect(project).flag_ids

    def test_below_bau_target_this_year_increase(self, project_factory):
        """Target due this year with an increase is below business-as-usual."""
        project = project_factory(
            target_emissions=EmissionsData(scope1=110_000, scope2=20_000),
            target_year=REFERENCE_YEAR,
        )
        assert "below_bau" in _detect(project).flag_ids

    def test_trajectory_rules_skip_zero_baseline(self, project_factory):
        """No baseline → trajectory rules stay silent, missing_baseline fires."""
        ids = _detect(project_factory(current_emissions=EmissionsData())).flag_ids
        assert "below_bau" not in ids
        assert "weak_targets" not in ids
        assert "missing_baseline" in ids

    def test_weak_2030_target(self, project_factory):
        """10% by 2030 is below the 25% interim milestone."""
        project = project_factory(target_emissions=EmissionsData(scope1=90_000, scope2=18_000))
        assert "weak_targets" in _detect(project).flag_ids

    def test_missing_target_year(self, project_factory):
        """Unset target year → no_timeline only; trajectory rules and the near-term credit stay silent."""
        result = _detect(project_factory(target_year=0))

        assert "no_timeline" in result.flag_ids
        assert "below_bau" not in result.flag_ids
        assert "weak_targets" not in result.flag_ids
        assert "Near-term target year (by 2030)" not in result.positive_indicators

    def test_distant_target_year(self, project_factory):
        """Target after 2050 → no_timeline."""
        assert "no_timeline" in _detect(project_factory(target_year=2060)).flag_ids

    def test_missing_scope3_material_sector(self, project_factory):
        """Manufacturing without Scope 3 → missing_scope3."""
        project = project_factory(sector=Sector.MANUFACTURING)
        assert "missing_scope3" in _detect(project).flag_ids

    def test_scope3_reported(self, project_factory):
        """Reported Scope 3 clears the flag and adds a positive."""
        project = project_factory(
            sector=Sector.MANUFACTURING,
            current_emissions=EmissionsData(scope1=100_000, scope2=20_000, scope3=300_000),
        )
        result = _detect(project)
        assert "missing_scope3" not in result.flag_ids
        assert "Scope 3 emissions measured" in result.positive_indicators


class TestDocumentRules:
    """Rules that read raw document text when present."""

    def test_explicit_inconsistency(self, project_factory):
        """Document admitting inconsistencies → explicit_inconsistency."""
        project = project_factory(raw_document_text="The document contains inconsistencies in the baseline year.")
        assert "explicit_inconsistency" in _detect(project).flag_ids

    def test_consistency_commitment_not_flagged(self, project_factory):
        """A commitment to resolve inconsistencies is not an admission."""
        project = project_factory(
            raw_document_text="We found inconsistencies in legacy data and will resolve any inconsistencies by Q2."
        )
        assert "explicit_inconsistency" not in _detect(project).flag_ids

    def test_ownership_over_100(self, project_factory):
        """Ownership summing to 120% → ownership_exceeds_100."""
        project = project_factory(raw_document_text="Equity stakes: Sponsor 70%, Partner 50% (total 120%).")
        assert "ownership_exceeds_100" in _detect(project).flag_ids

    def test_unverifiable_verification(self, project_factory):
        """Unverifiable audit without a pending verification plan."""
        project = project_factory(raw_document_text="Note: the audit cannot be verified with the named firm.")
        assert "unverifiable_verification" in _detect(project).flag_ids

    def test_artisanal_mining(self, project_factory):
        """Artisanal mining without due diligence language → artisanal_mining_risk."""
        project = project_factory(raw_document_text="Ore is bought from artisanal mining cooperatives near Kolwezi.")
        assert "artisanal_mining_risk" in _detect(project).flag_ids

    def test_artisanal_mining_with_due_diligence(self, project_factory):
        """OECD due diligence language clears artisanal_mining_risk."""
        project = project_factory(
            raw_document_text="No artisanal mining is used; suppliers follow OECD due diligence guidance."
        )
        assert "artisanal_mining_risk" not in _detect(project).flag_ids

    def test_cobalt_from_drc(self, project_factory):
        """Explicit DRC cobalt sourcing → cobalt_drc_risk."""
        project = project_factory(raw_document_text="Battery cells use cobalt sourced from the DRC.")
        assert "cobalt_drc_risk" in _detect(project).flag_ids

    def test_cobalt_company_name_only(self, project_factory):
        """A company name alone doesn't imply DRC sourcing."""
        project = project_factory(raw_document_text="Cobalt hydroxide supplied by Kinshasa Trading Ltd.")
        assert "cobalt_drc_risk" not in _detect(project).flag_ids


# ─── Scoring ─────────────────────────────────────────────────────────────────


class TestRiskScore:
    """Severity weights, positive credit and clamping."""

    def test_severity_weights(self):
        """high 25 + medium 15 + low 5 = 45."""
        flags = [_flag(RiskLevel.HIGH), _flag(RiskLevel.MEDIUM), _flag(RiskLevel.LOW)]
        assert calculate_risk_score(flags, []) == 45

    def test_positive_credit(self):
        """Each positive offsets 10 points."""
        assert calculate_risk_score([_flag(RiskLevel.HIGH)] * 2, ["a", "b"]) == 30

    def test_clamped_high(self):
        """Score never exceeds 100."""
        assert calculate_risk_score([_flag(RiskLevel.HIGH)] * 10, []) == 100

    def test_clamped_low(self):
        """Score never drops below 0."""
        assert calculate_risk_score([], ["x"] * 7) == 0

    def test_monotonic_in_high_flags(self):
        """Adding a high flag never lowers the score."""
        positives = ["a", "b", "c"]
        scores = [calculate_risk_score([_flag(RiskLevel.HIGH)] * n, positives) for n in range(8)]
        assert scores == sorted(scores)

    def test_monotonic_on_project(self, project_factory):
        """Adding fossil lock-in to a fixed project never lowers its risk score."""
        base = project_factory(has_published_plan=False)
        worse = project_factory(
            has_published_plan=False,
            description=base.description + " Includes new diesel backup units at each site.",
        )
        base_result, worse_result = _detect(base), _detect(worse)
        assert "fossil_lockin" in worse_result.flag_ids
        assert worse_result.risk_score >= base_result.risk_score

    @pytest.mark.parametrize(
        "score,level",
        [(100, RiskLevel.HIGH), (70, RiskLevel.HIGH), (69, RiskLevel.MEDIUM), (40, RiskLevel.MEDIUM), (39, RiskLevel.LOW)],
    )
    def test_risk_level_thresholds(self, score, level):
        """>=70 high, >=40 medium, else low."""
        assert risk_level_for_score(score) == level


class TestRecommendations:
    """Critical items first, at most three medium items, then advisories."""

    def test_order_and_limits(self):
        """High flags are prefixed [CRITICAL]; medium items capped at three."""
        flags = [_flag(RiskLevel.MEDIUM, f"m{i}") for i in range(5)] + [_flag(RiskLevel.HIGH, "h")]
        recs = generate_recommendations(flags, RiskLevel.HIGH)

        assert recs[0] == "[CRITICAL] Fix h"
        assert recs[1:4] == ["Fix m0", "Fix m1", "Fix m2"]
        assert recs[4:] == list(HIGH_RISK_ADVISORIES)

    def test_medium_advisory(self):
        """Medium overall risk adds the medium advisory."""
        recs = generate_recommendations([_flag(RiskLevel.MEDIUM)], RiskLevel.MEDIUM)
        assert recs[-1] == MEDIUM_RISK_ADVISORIES[0]

    def test_low_risk_no_advisory(self):
        """Low overall risk adds no advisory."""
        assert generate_recommendations([_flag(RiskLevel.LOW)], RiskLevel.LOW) == []


class TestDeterminism:
    """Same project, same reference year → same result."""

    def test_repeated_detection(self, project_factory):
        """Two runs produce identical results."""
        project = project_factory(description="Various works", has_published_plan=False)
        detector = RedFlagDetector(reference_year=REFERENCE_YEAR)
        assert detector.detect(project) == detector.detect(project)

    def test_convenience_wrapper(self, clean_project):
        """detect_red_flags matches a fresh detector."""
        assert detect_red_flags(clean_project, reference_year=REFERENCE_YEAR) == _detect(clean_project)


# ─── Report pre-filter ───────────────────────────────────────────────────────


class TestReportPrefilter:
    """Previously generated screening reports don't trigger document-text rules."""

    def test_markers_detected(self):
        """Three distinct markers in a generated report."""
        matched = ReportPrefilter().matched_markers(GENERATED_REPORT)
        assert "greenwashing risk" in matched
        assert "transition eligibility assessment" in matched
        assert ReportPrefilter().is_generated_report(GENERATED_REPORT)

    def test_single_marker_not_enough(self):
        """One marker alone is ordinary project prose."""
        assert not ReportPrefilter().is_generated_report("We discuss greenwashing risk in section 4.")

    def test_empty_text(self):
        """No document → not a report."""
        assert not ReportPrefilter().is_generated_report(None)
        assert not ReportPrefilter().is_generated_report("")

    def test_report_flags_suppressed(self, project_factory):
        """Quoted historical flags in a generated report are withheld."""
        result = _detect(project_factory(raw_document_text=GENERATED_REPORT))

        assert result.prefilter_applied
        assert result.suppressed_flag_ids == ["explicit_inconsistency", "unverifiable_verification"]
        assert "explicit_inconsistency" not in result.flag_ids
        assert "unverifiable_verification" not in result.flag_ids

    def test_ordinary_document_not_suppressed(self, project_factory):
        """The same admission in an ordinary document still fires."""
        project = project_factory(
            raw_document_text="Note: the document contains inconsistencies between the baseline tables."
        )
        result = _detect(project)
        assert not result.prefilter_applied
        assert result.suppressed_flag_ids == []
        assert "explicit_inconsistency" in result.flag_ids

    def test_narrative_rules_unaffected(self, project_factory):
        """Narrative-field rules still fire when the document is a report."""
        project = project_factory(raw_document_text=GENERATED_REPORT, has_published_plan=False)
        assert "no_published_plan" in _detect(project).flag_ids
