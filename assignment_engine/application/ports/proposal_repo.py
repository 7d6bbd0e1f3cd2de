"""Port interface for assignment proposals of the latest pass."""

from abc import ABC, abstractmethod

from assignment_engine.domain.entities.proposal import AssignmentProposal


class ProposalRepository(ABC):
    @abstractmethod
    async def replace_all(self, proposals: list[AssignmentProposal]) -> None:
        """Swap in the proposals of a new full pass."""
        ...

    @abstractmethod
    async def upsert(self, proposals: list[AssignmentProposal]) -> None:
        ...

    @abstractmethod
    async def get_all(self) -> list[AssignmentProposal]:
        ...

    @abstractmethod
    async def get_by_account(self, account_id: str) -> AssignmentProposal | None:
        ...
