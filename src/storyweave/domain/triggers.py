"""Pure helpers that decide whether storylet triggers hold."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

from storyweave.core.rng import RNG
from storyweave.domain.defs import (
    ClueTrigger,
    ComparisonTrigger,
    RandomTrigger,
    RelationshipTrigger,
    ResourceTrigger,
    StoryletCompletionTrigger,
    TimeTrigger,
    TriggerDef,
)
from storyweave.domain.state import WorldState

logger = logging.getLogger(__name__)

_COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    ">": lambda actual, target: actual > target,
    "<": lambda actual, target: actual < target,
    "=": lambda actual, target: actual == target,
    ">=": lambda actual, target: actual >= target,
    "<=": lambda actual, target: actual <= target,
    "!=": lambda actual, target: actual != target,
}

_default_rng = RNG()


@dataclass(slots=True)
class TriggerCheck:
    """Outcome of evaluating a group of ANDed triggers."""

    all_met: bool
    failed_descriptions: List[str] = field(default_factory=list)


def compare(actual: float, operator: str, target: float) -> bool:
    """Compare two numbers with a trigger operator; unknown operators never match."""
    comparator = _COMPARATORS.get(operator)
    if comparator is None:
        return False
    return comparator(actual, target)


def evaluate_trigger(trigger: TriggerDef, state: WorldState, rng: RNG | None = None) -> bool:
    """Return True when the trigger holds against the given state.

    Evaluation never raises: a failing evaluation counts as unsatisfied.
    """
    try:
        if isinstance(trigger, (ResourceTrigger, RelationshipTrigger, TimeTrigger)):
            return compare(_numeric_value(trigger, state), trigger.operator, trigger.value)
        if isinstance(trigger, ClueTrigger):
            return trigger.condition in state.discovered_clues
        if isinstance(trigger, StoryletCompletionTrigger):
            return trigger.condition in state.completed_storylets
        if isinstance(trigger, RandomTrigger):
            return (rng or _default_rng).percent() < trigger.value
    except Exception:
        logger.exception("Error evaluating trigger %s", getattr(trigger, "id", "?"))
        return False
    logger.warning("Unknown trigger type: %s", getattr(trigger, "kind", type(trigger).__name__))
    return False


def evaluate_all(
    triggers: Sequence[TriggerDef], state: WorldState, rng: RNG | None = None
) -> TriggerCheck:
    """Evaluate every trigger and collect the descriptions of those that fail."""
    failed = [
        trigger.description
        for trigger in triggers
        if not evaluate_trigger(trigger, state, rng)
    ]
    return TriggerCheck(all_met=not failed, failed_descriptions=failed)


def _numeric_value(trigger: ComparisonTrigger, state: WorldState) -> float:
    if isinstance(trigger, ResourceTrigger):
        return state.resource(trigger.condition)
    if isinstance(trigger, RelationshipTrigger):
        return state.relationship(trigger.condition)
    return state.game_time
