"""AssignmentProposal and AssignmentWarning — the engine's per-account output."""

from __future__ import annotations

from dataclasses import dataclass, field

from assignment_engine.domain.value_objects.enums import (
    Confidence,
    CreRiskLevel,
    RuleApplied,
    Severity,
    WarningType,
)


@dataclass(frozen=True)
class AssignmentWarning:
    type: WarningType
    severity: Severity
    reason: str
    details: str | None = None

    def as_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "reason": self.reason,
            "details": self.details,
        }


@dataclass
class AssignmentProposal:
    account_id: str
    proposed_owner_id: str | None
    proposed_owner_name: str | None
    proposed_owner_region: str | None
    rule_applied: RuleApplied
    assignment_reason: str
    confidence: Confidence = Confidence.HIGH
    cre_risk: CreRiskLevel = CreRiskLevel.NONE
    warnings: list[AssignmentWarning] = field(default_factory=list)
    force_low_confidence: bool = False

    @property
    def is_unassigned(self) -> bool:
        return self.proposed_owner_id is None

    def warning_types(self) -> set[WarningType]:
        return {w.type for w in self.warnings}

    def has_warning(self, warning_type: WarningType) -> bool:
        return any(w.type == warning_type for w in self.warnings)

    def add_warning(self, warning: AssignmentWarning) -> None:
        if warning not in self.warnings:
            self.warnings.append(warning)

    def drop_warnings(self, warning_type: WarningType) -> None:
        self.warnings = [w for w in self.warnings if w.type != warning_type]

    def as_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "proposed_owner_id": self.proposed_owner_id,
            "proposed_owner_name": self.proposed_owner_name,
            "proposed_owner_region": self.proposed_owner_region,
            "rule_applied": self.rule_applied.value,
            "assignment_reason": self.assignment_reason,
            "confidence": self.confidence.value,
            "cre_risk": self.cre_risk.value,
            "warnings": [w.as_dict() for w in self.warnings],
        }
