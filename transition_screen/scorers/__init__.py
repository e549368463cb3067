"""Deterministic scoring modules for transition screening."""

from transition_screen.scorers.combiner import ScoreCombiner, merge_unique, round_half_up
from transition_screen.scorers.red_flags import RULES, RedFlagDetector, RedFlagRule, detect_red_flags
from transition_screen.scorers.report_prefilter import DOCUMENT_TEXT_RULES, ReportPrefilter
from transition_screen.scorers.safeguard_weights import SectorWeights, get_sector_weights

__all__ = [
    "DOCUMENT_TEXT_RULES",
    "RULES",
    "RedFlagDetector",
    "RedFlagRule",
    "ReportPrefilter",
    "ScoreCombiner",
    "SectorWeights",
    "detect_red_flags",
    "get_sector_weights",
    "merge_unique",
    "round_half_up",
]
