"""SalesRep entity — a representative that can own accounts."""

from dataclasses import dataclass


@dataclass
class SalesRep:
    rep_id: str
    name: str
    region: str | None = None
    team: str | None = None
    is_active: bool = True
    include_in_assignments: bool = True
    is_manager: bool = False
    is_strategic_rep: bool = False

    @property
    def is_eligible(self) -> bool:
        """Hard gate: the engine never targets a rep failing this check."""
        return self.is_active and self.include_in_assignments

    @property
    def receives_new_accounts(self) -> bool:
        # Managers keep what they own but are not handed new accounts
        return self.is_eligible and not self.is_manager
