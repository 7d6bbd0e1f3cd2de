"""TerritoryMap value object — immutable territory → region lookup."""

from __future__ import annotations

from dataclasses import dataclass, field


def _key(value: str) -> str:
    return value.strip().lower()


@dataclass(frozen=True)
class TerritoryMap:
    mappings: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Lookups are case-insensitive on the territory side
        normalized = {_key(t): r.strip() for t, r in self.mappings.items() if t and r and r.strip()}
        object.__setattr__(self, "mappings", normalized)

    def region_for(self, territory: str | None) -> str | None:
        """Return the mapped region, or None when the territory is unmapped."""
        if not territory or not territory.strip():
            return None
        return self.mappings.get(_key(territory))

    def merged(self, extra: dict[str, str]) -> TerritoryMap:
        """Combine with another table; entries from *self* win on conflict."""
        combined = {_key(t): r for t, r in extra.items()}
        combined.update(self.mappings)
        return TerritoryMap(combined)


def same_region(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return _key(a) == _key(b)
