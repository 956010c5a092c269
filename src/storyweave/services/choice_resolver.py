"""Filters a storylet's choices down to the ones that can be presented."""
from __future__ import annotations

from typing import List, Sequence

from storyweave.core.rng import RNG
from storyweave.domain.defs import ChoiceDef
from storyweave.domain.state import WorldState
from storyweave.domain.triggers import evaluate_all

_default_rng = RNG()


def requirements_met(choice: ChoiceDef, state: WorldState, rng: RNG | None = None) -> bool:
    """Return True when every requirement trigger of the choice holds."""
    if not choice.requirements:
        return True
    return evaluate_all(choice.requirements, state, rng).all_met


def is_presentable(choice: ChoiceDef, state: WorldState, rng: RNG | None = None) -> bool:
    if choice.unlocked is False:
        return False
    if choice.requirements:
        return requirements_met(choice, state, rng)
    if choice.probability is not None and choice.probability < 100:
        return (rng or _default_rng).percent() < choice.probability
    return True


def resolve_choices(
    choices: Sequence[ChoiceDef], state: WorldState, rng: RNG | None = None
) -> List[ChoiceDef]:
    """Return the presentable choices, keeping their original order."""
    return [choice for choice in choices if is_presentable(choice, state, rng)]
