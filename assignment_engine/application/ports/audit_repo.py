"""Port interface for the reassignment / lock audit trail."""

from abc import ABC, abstractmethod

from assignment_engine.domain.entities.audit_entry import AuditEntry


class AuditRepository(ABC):
    @abstractmethod
    async def save(self, entry: AuditEntry) -> AuditEntry:
        ...

    @abstractmethod
    async def get_all(self) -> list[AuditEntry]:
        ...

    @abstractmethod
    async def get_by_account(self, account_id: str) -> list[AuditEntry]:
        ...
