"""ConfidenceScorer — assignment quality from warnings, CRE risk from the account.

The two answers are independent: CRE risk describes churn exposure of the
account and never feeds into the confidence level.
"""

from __future__ import annotations

from collections.abc import Iterable

from assignment_engine.domain.entities.proposal import AssignmentProposal, AssignmentWarning
from assignment_engine.domain.value_objects.enums import Confidence, CreRiskLevel, WarningType

LOW_CONFIDENCE_WARNINGS = frozenset(
    {
        WarningType.CAPACITY_EXCEEDED,
        WarningType.HIERARCHY_SPLIT,
        WarningType.CHANGING_CUSTOMER_OWNER,
        WarningType.STRATEGIC_OVERFLOW,
    }
)

MEDIUM_CONFIDENCE_WARNINGS = frozenset(
    {
        WarningType.CONTINUITY_BROKEN,
        WarningType.TIER_CONCENTRATION,
        WarningType.CROSS_REGION,
        WarningType.LOCK_OVERRIDE,
    }
)

CRE_LOW_MAX = 2
CRE_MEDIUM_MAX = 5


def score_confidence(warnings: Iterable[AssignmentWarning], force_low: bool = False) -> Confidence:
    if force_low:
        return Confidence.LOW

    level = Confidence.HIGH
    for warning in warnings:
        if warning.type in LOW_CONFIDENCE_WARNINGS:
            return Confidence.LOW  # sticky
        if warning.type in MEDIUM_CONFIDENCE_WARNINGS:
            level = Confidence.MEDIUM
    return level


def cre_risk_level(cre_count: int) -> CreRiskLevel:
    if cre_count <= 0:
        return CreRiskLevel.NONE
    if cre_count <= CRE_LOW_MAX:
        return CreRiskLevel.LOW
    if cre_count <= CRE_MEDIUM_MAX:
        return CreRiskLevel.MEDIUM
    return CreRiskLevel.HIGH


def finalize(proposal: AssignmentProposal, cre_count: int) -> AssignmentProposal:
    """Fill in confidence and CRE risk on a proposal whose warnings are final."""
    proposal.confidence = score_confidence(proposal.warnings, proposal.force_low_confidence)
    proposal.cre_risk = cre_risk_level(cre_count)
    return proposal
