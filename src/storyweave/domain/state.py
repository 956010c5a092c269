"""World state tracked while playing storylets."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Dict, Mapping, Set

DEFAULT_RESOURCES: Dict[str, float] = {
    "energy": 100,
    "social": 50,
    "knowledge": 0,
    "money": 100,
}


def default_resources() -> Dict[str, float]:
    return dict(DEFAULT_RESOURCES)


@dataclass
class WorldState:
    """Snapshot of everything triggers read and effects write."""

    resources: Dict[str, float] = field(default_factory=default_resources)
    game_time: float = 0
    discovered_clues: Set[str] = field(default_factory=set)
    completed_storylets: Set[str] = field(default_factory=set)
    relationships: Dict[str, float] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)
    variables: Dict[str, object] = field(default_factory=dict)
    current_arc_id: str | None = None

    def resource(self, name: str) -> float:
        return self.resources.get(name, 0)

    def relationship(self, character_id: str) -> float:
        return self.relationships.get(character_id, 0)

    def copy(self) -> "WorldState":
        """Return an independent copy; containers are never shared."""
        return replace(
            self,
            resources=dict(self.resources),
            discovered_clues=set(self.discovered_clues),
            completed_storylets=set(self.completed_storylets),
            relationships=dict(self.relationships),
            flags=dict(self.flags),
            variables=dict(self.variables),
        )

    def with_overrides(self, overrides: Mapping[str, object] | None) -> "WorldState":
        """Return a copy with the named fields replaced."""
        snapshot = self.copy()
        if not overrides:
            return snapshot
        known = {state_field.name for state_field in fields(self)}
        for name, value in overrides.items():
            if name not in known:
                raise ValueError(f"Unknown world state field '{name}'.")
            if isinstance(value, (set, frozenset, list, tuple)) and name in (
                "discovered_clues",
                "completed_storylets",
            ):
                value = set(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            setattr(snapshot, name, value)
        return snapshot
