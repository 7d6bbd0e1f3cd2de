"""AuditEntry entity — one record per manual reassignment or lock change."""

from dataclasses import dataclass, field
from datetime import datetime

from assignment_engine.domain.value_objects.enums import AuditAction, WarningType


@dataclass
class AuditEntry:
    id: int | None
    account_id: str
    action: AuditAction
    previous_owner_id: str | None
    previous_owner_name: str | None
    new_owner_id: str | None
    new_owner_name: str | None
    rationale: str | None = None
    moved_account_ids: list[str] = field(default_factory=list)
    skipped_locked_ids: list[str] = field(default_factory=list)
    unlocked_account_ids: list[str] = field(default_factory=list)
    warning_types: list[WarningType] = field(default_factory=list)
    created_at: datetime | None = None

    @property
    def children_moved(self) -> int:
        """Cascaded accounts besides the target itself."""
        return len([a for a in self.moved_account_ids if a != self.account_id])
