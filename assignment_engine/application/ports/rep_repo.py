"""Port interface for sales rep lookups."""

from abc import ABC, abstractmethod

from assignment_engine.domain.entities.sales_rep import SalesRep


class RepRepository(ABC):
    @abstractmethod
    async def get_all(self) -> list[SalesRep]:
        ...

    @abstractmethod
    async def get_by_id(self, rep_id: str) -> SalesRep | None:
        ...
