from dataclasses import dataclass
from typing import ClassVar

import pytest

from storyweave.domain.defs import (
    ArcProgressEffect,
    ClueDiscoveryEffect,
    RelationshipEffect,
    ResourceEffect,
    StoryletUnlockEffect,
    TimeAdvanceEffect,
)
from storyweave.domain.effects import (
    ArcProgressed,
    ClueDiscovered,
    EffectCatalog,
    RelationshipChanged,
    ResourceChanged,
    StoryletUnlocked,
    TimeAdvanced,
    UnsupportedEffectError,
    apply_effect,
    apply_effects,
)
from storyweave.domain.state import WorldState


@dataclass
class _MysteryEffect:
    kind: ClassVar[str] = "mystery"

    id: str


@pytest.mark.parametrize(
    "operator, value, expected",
    [("+", 25, 125), ("-", 30, 70), ("=", 7, 7), ("*", 0.5, 50)],
)
def test_resource_operators(operator: str, value: float, expected: float) -> None:
    outcome = apply_effect(WorldState(), ResourceEffect(id="e", target="energy", value=value, operator=operator))
    assert outcome.state.resources["energy"] == expected
    assert outcome.change == ResourceChanged("e", "energy", 100, expected)


def test_resource_never_goes_negative() -> None:
    state = WorldState()
    outcome = apply_effect(state, ResourceEffect(id="drain", target="energy", value=150, operator="-"))
    assert outcome.state.resources["energy"] == 0
    assert apply_effect(state, ResourceEffect(id="set", target="energy", value=-5, operator="=")).state.resource(
        "energy"
    ) == 0
    assert apply_effect(state, ResourceEffect(id="mul", target="energy", value=-2, operator="*")).state.resource(
        "energy"
    ) == 0


def test_apply_effect_leaves_input_snapshot_untouched() -> None:
    state = WorldState()
    apply_effect(state, ResourceEffect(id="e", target="energy", value=10, operator="-"))
    apply_effect(state, ClueDiscoveryEffect(id="c", target="card"))
    assert state.resources["energy"] == 100
    assert state.discovered_clues == set()


def test_relationship_is_clamped() -> None:
    state = WorldState(relationships={"maya": 90})
    raised = apply_effect(state, RelationshipEffect(id="up", target="maya", value=50))
    lowered = apply_effect(state, RelationshipEffect(id="down", target="maya", value=250, operator="-"))
    assert raised.state.relationships["maya"] == 100
    assert lowered.state.relationships["maya"] == -100
    assert raised.change == RelationshipChanged("up", "maya", 90, 100)


def test_relationship_starts_from_zero() -> None:
    outcome = apply_effect(WorldState(), RelationshipEffect(id="e", target="okafor", value=-5))
    assert outcome.state.relationships == {"okafor": -5}


def test_clue_discovery_is_idempotent() -> None:
    state = WorldState(discovered_clues={"card"})
    outcome = apply_effect(state, ClueDiscoveryEffect(id="again", target="card"))
    assert outcome.state.discovered_clues == {"card"}
    assert outcome.change == ClueDiscovered("again", "card", already_known=True)

    batch = apply_effects(state, [ClueDiscoveryEffect(id="again", target="card")])
    assert batch.errors == []
    assert batch.applied == [ClueDiscoveryEffect(id="again", target="card")]
    assert batch.state_changes.discovered_clues == []


def test_unlock_and_arc_progress_are_recorded_only() -> None:
    state = WorldState()
    unlock = apply_effect(state, StoryletUnlockEffect(id="u", target="stacks"))
    progress = apply_effect(state, ArcProgressEffect(id="p", target="mystery", value=2))
    assert unlock.change == StoryletUnlocked("u", "stacks")
    assert progress.change == ArcProgressed("p", "mystery", 2)
    assert unlock.state == state
    assert progress.state == state


def test_time_advance_allows_fractional_and_negative_values() -> None:
    state = WorldState(game_time=5)
    forward = apply_effect(state, TimeAdvanceEffect(id="f", value=0.5))
    backward = apply_effect(state, TimeAdvanceEffect(id="b", value=-7.5))
    assert forward.state.game_time == 5.5
    assert backward.state.game_time == -2.5
    assert backward.change == TimeAdvanced("b", -7.5, -2.5)


def test_unknown_operator_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Unknown operator"):
        apply_effect(WorldState(), ResourceEffect(id="e", target="energy", value=1, operator="^"))  # type: ignore[arg-type]


def test_unknown_effect_type_raises() -> None:
    with pytest.raises(UnsupportedEffectError, match="Unknown effect type: mystery"):
        apply_effect(WorldState(), _MysteryEffect(id="m"))  # type: ignore[arg-type]


def test_catalog_rejects_unknown_targets() -> None:
    catalog = EffectCatalog(resources={"energy"}, characters={"maya"})
    with pytest.raises(KeyError):
        apply_effect(WorldState(), ResourceEffect(id="e", target="gold", value=1), catalog)
    with pytest.raises(KeyError):
        apply_effect(WorldState(), RelationshipEffect(id="r", target="okafor", value=1), catalog)
    outcome = apply_effect(WorldState(), ClueDiscoveryEffect(id="c", target="anything"), catalog)
    assert outcome.state.discovered_clues == {"anything"}


def test_apply_effects_continues_after_failures() -> None:
    catalog = EffectCatalog(resources={"energy", "money"})
    effects = [
        ResourceEffect(id="bad-target", target="gold", value=5),
        _MysteryEffect(id="mystery"),
        ResourceEffect(id="bad-op", target="money", value=5, operator="^"),  # type: ignore[arg-type]
        ResourceEffect(id="good", target="energy", value=5),
    ]
    batch = apply_effects(WorldState(), effects, catalog)  # type: ignore[arg-type]
    assert batch.errors == [
        "Failed to apply effect bad-target: Unknown resource 'gold'",
        "Failed to apply effect bad-op: Unknown operator '^'",
    ]
    assert batch.warnings == ["Unknown effect type: mystery"]
    assert [effect.id for effect in batch.applied] == ["good"]
    assert batch.state.resources["energy"] == 105
    assert batch.state.resources["money"] == 100


def test_state_changes_accumulate_over_batch() -> None:
    effects = [
        ResourceEffect(id="a", target="energy", value=10, operator="-"),
        ResourceEffect(id="b", target="energy", value=5, operator="-"),
        RelationshipEffect(id="c", target="maya", value=10),
        ClueDiscoveryEffect(id="d", target="card"),
        StoryletUnlockEffect(id="e", target="stacks"),
        ArcProgressEffect(id="f", target="mystery"),
        ArcProgressEffect(id="g", target="mystery", value=2),
        TimeAdvanceEffect(id="h", value=1.5),
        TimeAdvanceEffect(id="i", value=0.5),
    ]
    changes = apply_effects(WorldState(), effects).state_changes
    assert changes.resources == {"energy": 85}
    assert changes.relationships == {"maya": 10}
    assert changes.discovered_clues == ["card"]
    assert changes.unlocked_storylets == ["stacks"]
    assert changes.arc_progress == {"mystery": 3}
    assert changes.game_time == 2
    assert not changes.is_empty


def test_empty_batch_reports_no_changes() -> None:
    batch = apply_effects(WorldState(), [])
    assert batch.state_changes.is_empty
    assert batch.applied == []
