"""Pure helpers for applying storylet effects to a world state snapshot."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Container, Dict, List, Sequence

from storyweave.domain.defs import (
    ArcProgressEffect,
    ClueDiscoveryEffect,
    EffectDef,
    RelationshipEffect,
    ResourceEffect,
    StoryletUnlockEffect,
    TimeAdvanceEffect,
)
from storyweave.domain.state import WorldState

logger = logging.getLogger(__name__)

RELATIONSHIP_MIN = -100
RELATIONSHIP_MAX = 100


class UnsupportedEffectError(Exception):
    """Raised for effect payloads the applier has no rule for."""


@dataclass(slots=True)
class EffectCatalog:
    """Ids the caller knows about; ``None`` means any id is accepted."""

    resources: Container[str] | None = None
    characters: Container[str] | None = None
    clues: Container[str] | None = None
    storylets: Container[str] | None = None
    arcs: Container[str] | None = None

    def require(self, category: str, target: str) -> None:
        known = getattr(self, category)
        if known is not None and target not in known:
            raise KeyError(f"Unknown {category[:-1]} '{target}'")


@dataclass(slots=True)
class EffectChange:
    """Base class for change records produced by effects."""

    effect_id: str


@dataclass(slots=True)
class ResourceChanged(EffectChange):
    resource: str
    old_value: float
    new_value: float


@dataclass(slots=True)
class RelationshipChanged(EffectChange):
    character_id: str
    old_value: float
    new_value: float


@dataclass(slots=True)
class ClueDiscovered(EffectChange):
    clue_id: str
    already_known: bool = False


@dataclass(slots=True)
class StoryletUnlocked(EffectChange):
    storylet_id: str


@dataclass(slots=True)
class ArcProgressed(EffectChange):
    arc_id: str
    amount: float


@dataclass(slots=True)
class TimeAdvanced(EffectChange):
    amount: float
    game_time: float


@dataclass(slots=True)
class StateChanges:
    """Structured diff accumulated over a batch of effects."""

    resources: Dict[str, float] = field(default_factory=dict)
    relationships: Dict[str, float] = field(default_factory=dict)
    game_time: float = 0
    discovered_clues: List[str] = field(default_factory=list)
    unlocked_storylets: List[str] = field(default_factory=list)
    arc_progress: Dict[str, float] = field(default_factory=dict)
    completed_storylets: List[str] = field(default_factory=list)

    def record(self, change: EffectChange) -> None:
        if isinstance(change, ResourceChanged):
            self.resources[change.resource] = change.new_value
        elif isinstance(change, RelationshipChanged):
            self.relationships[change.character_id] = change.new_value
        elif isinstance(change, ClueDiscovered):
            if not change.already_known and change.clue_id not in self.discovered_clues:
                self.discovered_clues.append(change.clue_id)
        elif isinstance(change, StoryletUnlocked):
            if change.storylet_id not in self.unlocked_storylets:
                self.unlocked_storylets.append(change.storylet_id)
        elif isinstance(change, ArcProgressed):
            self.arc_progress[change.arc_id] = self.arc_progress.get(change.arc_id, 0) + change.amount
        elif isinstance(change, TimeAdvanced):
            self.game_time += change.amount

    @property
    def is_empty(self) -> bool:
        return not (
            self.resources
            or self.relationships
            or self.game_time
            or self.discovered_clues
            or self.unlocked_storylets
            or self.arc_progress
            or self.completed_storylets
        )


@dataclass(slots=True)
class EffectOutcome:
    state: WorldState
    change: EffectChange


@dataclass(slots=True)
class EffectBatch:
    """Result of applying a list of effects one after another."""

    state: WorldState
    applied: List[EffectDef] = field(default_factory=list)
    changes: List[EffectChange] = field(default_factory=list)
    state_changes: StateChanges = field(default_factory=StateChanges)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def apply_effect(
    state: WorldState,
    effect: EffectDef,
    catalog: EffectCatalog | None = None,
) -> EffectOutcome:
    """Apply one effect and return the new snapshot plus a change record.

    The input snapshot is left untouched. Unknown targets (when a catalog is
    given), unknown operators and unsupported effect types raise.
    """
    updated = state.copy()
    if isinstance(effect, ResourceEffect):
        if catalog is not None:
            catalog.require("resources", effect.target)
        old_value = updated.resource(effect.target)
        new_value = max(0, _operate(old_value, effect.operator, effect.value))
        updated.resources[effect.target] = new_value
        return EffectOutcome(updated, ResourceChanged(effect.id, effect.target, old_value, new_value))
    if isinstance(effect, RelationshipEffect):
        if catalog is not None:
            catalog.require("characters", effect.target)
        old_value = updated.relationship(effect.target)
        new_value = _operate(old_value, effect.operator, effect.value)
        new_value = max(RELATIONSHIP_MIN, min(RELATIONSHIP_MAX, new_value))
        updated.relationships[effect.target] = new_value
        return EffectOutcome(
            updated, RelationshipChanged(effect.id, effect.target, old_value, new_value)
        )
    if isinstance(effect, ClueDiscoveryEffect):
        if catalog is not None:
            catalog.require("clues", effect.target)
        already_known = effect.target in updated.discovered_clues
        updated.discovered_clues.add(effect.target)
        return EffectOutcome(updated, ClueDiscovered(effect.id, effect.target, already_known))
    if isinstance(effect, StoryletUnlockEffect):
        if catalog is not None:
            catalog.require("storylets", effect.target)
        return EffectOutcome(updated, StoryletUnlocked(effect.id, effect.target))
    if isinstance(effect, ArcProgressEffect):
        if catalog is not None:
            catalog.require("arcs", effect.target)
        return EffectOutcome(updated, ArcProgressed(effect.id, effect.target, effect.value))
    if isinstance(effect, TimeAdvanceEffect):
        # Time may be rolled back; it is never clamped.
        updated.game_time = updated.game_time + effect.value
        return EffectOutcome(updated, TimeAdvanced(effect.id, effect.value, updated.game_time))
    kind = getattr(effect, "kind", type(effect).__name__)
    raise UnsupportedEffectError(f"Unknown effect type: {kind}")


def apply_effects(
    state: WorldState,
    effects: Sequence[EffectDef],
    catalog: EffectCatalog | None = None,
) -> EffectBatch:
    """Apply effects independently; a failing effect does not stop the rest."""
    batch = EffectBatch(state=state)
    for effect in effects:
        try:
            outcome = apply_effect(batch.state, effect, catalog)
        except UnsupportedEffectError as exc:
            batch.warnings.append(str(exc))
            logger.warning("Skipping effect %s: %s", getattr(effect, "id", "?"), exc)
            continue
        except (KeyError, ValueError, TypeError, ArithmeticError) as exc:
            reason = exc.args[0] if exc.args else str(exc)
            batch.errors.append(f"Failed to apply effect {effect.id}: {reason}")
            logger.warning("Failed to apply effect %s: %s", effect.id, reason)
            continue
        batch.state = outcome.state
        batch.applied.append(effect)
        batch.changes.append(outcome.change)
        batch.state_changes.record(outcome.change)
    return batch


def _operate(current: float, operator: str, value: float) -> float:
    if operator == "+":
        return current + value
    if operator == "-":
        return current - value
    if operator == "=":
        return value
    if operator == "*":
        return current * value
    raise ValueError(f"Unknown operator '{operator}'")
