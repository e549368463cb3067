"""Report Pre-filter - detect documents that are earlier screening reports.

A user may upload a compliance report this tool (or a similar one) produced
earlier instead of the underlying project document. Such a report quotes
phrases like "found inconsistencies" or "audit cannot be verified" while
describing historical flags, and the document-text rules would fire on the
quotation rather than on the project.

When enough report markers are present, the detector evaluates the rules that
read document text against the narrative fields only.

Usage:
    prefilter = ReportPrefilter()
    if prefilter.is_generated_report(project.raw_document_text):
        ...
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Rules that read raw_document_text when it is present
DOCUMENT_TEXT_RULES = frozenset(
    {
        "proprietary_unverified",
        "no_verification",
        "explicit_inconsistency",
        "unrealistic_payback",
        "ownership_exceeds_100",
        "unverifiable_verification",
        "conflicting_numbers",
        "artisanal_mining_risk",
        "cobalt_drc_risk",
    }
)

DEFAULT_REPORT_MARKERS = (
    "greenwashing risk",
    "[critical]",
    "red flags identified",
    "red flags detected",
    "combined penalty",
    "risk score:",
    "positive indicators",
    "dnsh assessment",
    "transition eligibility assessment",
)

MIN_MARKER_MATCHES = 2


class ReportPrefilter:
    """Heuristic detector for previously generated screening reports."""

    def __init__(
        self,
        markers: tuple[str, ...] = DEFAULT_REPORT_MARKERS,
        min_matches: int = MIN_MARKER_MATCHES,
    ):
        self.markers = tuple(m.lower() for m in markers)
        self.min_matches = min_matches

    def matched_markers(self, document_text: Optional[str]) -> list[str]:
        if not document_text:
            return []
        text = document_text.lower()
        return [m for m in self.markers if m in text]

    def is_generated_report(self, document_text: Optional[str]) -> bool:
        """True when at least `min_matches` distinct markers appear."""
        matched = self.matched_markers(document_text)
        if len(matched) >= self.min_matches:
            logger.info(f"Document looks like a generated screening report (markers: {matched})")
            return True
        return False
