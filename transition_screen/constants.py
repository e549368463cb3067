"""
Global constants for the transition screening engine.

Centralizes thresholds, caps and truncation limits used by the rule detector,
the AI evaluators and the score combiner for easier maintenance and tuning.
"""

# Rule-based red flag weights (risk score contribution per flag)
SEVERITY_WEIGHTS = {
    "high": 25,
    "medium": 15,
    "low": 5,
}
POSITIVE_INDICATOR_CREDIT = 10  # Each positive indicator offsets 10 risk points
MAX_RISK_SCORE = 100

# Rule risk level thresholds (on the 0-100 risk score)
RULE_HIGH_RISK_THRESHOLD = 70
RULE_MEDIUM_RISK_THRESHOLD = 40
MAX_MEDIUM_RECOMMENDATIONS = 3  # Only the first 3 medium-severity recommendations are surfaced

# Emissions trajectory checks
MIN_ANNUAL_REDUCTION_PERCENT = 2.0  # Below this, a target looks like business-as-usual
INTERIM_TARGET_YEAR = 2030
MIN_2030_REDUCTION_PERCENT = 25.0
AMBITIOUS_REDUCTION_PERCENT = 42.0  # SBTi 1.5C near-term benchmark
LATEST_ACCEPTABLE_TARGET_YEAR = 2050
MIN_DESCRIPTION_CHARS = 50

# AI component evaluation
COMPONENT_MAX_SCORE = 25
MAX_DOCUMENT_CHARS_COMPONENT = 8000  # Document excerpt sent per dimension
MAX_TOP_CONCERNS = 5
MAX_POSITIVE_FINDINGS = 5
COMPONENT_MAX_TOKENS = 2000

# Safeguard (DNSH) evaluation
SAFEGUARD_CRITERION_MAX_SCORE = 4
SAFEGUARD_COMPLIANT_THRESHOLD = 75  # normalized score below this is at best "partial"
MAX_DOCUMENT_CHARS_SAFEGUARD = 10000
MAX_SAFEGUARD_FALLBACK_RECOMMENDATIONS = 3

# Score combination
MAX_COMBINED_PENALTY = 20
HYBRID_AI_WEIGHT = 0.6
HYBRID_RULE_WEIGHT = 0.4
COMBINED_HIGH_PENALTY_THRESHOLD = 15
COMBINED_MEDIUM_PENALTY_THRESHOLD = 6
MAX_MERGED_ENTRIES = 8  # recommendations / positive indicators after merge
DEDUP_PREFIX_CHARS = 20

# Network and Timeouts
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60
DEFAULT_LLM_SEED = 42  # Fixed seed for reproducible provider output where supported
MIN_DOCUMENT_CHARS_FOR_AI = 100  # Shorter documents are screened by rules only
