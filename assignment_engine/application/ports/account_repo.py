"""Port interface for account snapshot persistence."""

from abc import ABC, abstractmethod

from assignment_engine.domain.entities.account import Account


class AccountRepository(ABC):
    @abstractmethod
    async def get_all(self) -> list[Account]:
        ...

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Account | None:
        ...

    @abstractmethod
    async def save_all(self, accounts: list[Account]) -> None:
        """Persist proposed owner, split and lock fields written by the engine."""
        ...
