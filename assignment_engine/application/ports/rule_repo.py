"""Port interface for rule and territory configuration."""

from abc import ABC, abstractmethod

from assignment_engine.domain.entities.assignment_rule import RuleSet
from assignment_engine.domain.value_objects.territory_map import TerritoryMap


class RuleRepository(ABC):
    @abstractmethod
    async def get_rules(self) -> RuleSet:
        ...

    @abstractmethod
    async def get_territory_map(self) -> TerritoryMap:
        ...
