import asyncio

from storyweave.core.rng import RNG
from storyweave.data.repositories import StoryletRepository
from storyweave.domain.effects import EffectCatalog
from storyweave.domain.state import WorldState
from storyweave.services.execution_engine import StoryletExecutionEngine


def _payload() -> dict:
    return {
        "gym": {
            "title": "Gym",
            "triggers": [
                {
                    "type": "resource",
                    "condition": "energy",
                    "value": 150,
                    "operator": ">=",
                    "description": "Energy of at least 150",
                }
            ],
        },
        "cafe": {
            "title": "Cafe",
            "effects": [{"id": "coffee", "type": "resource", "target": "money", "value": 5, "operator": "-"}],
            "choices": [
                {
                    "id": "chat",
                    "text": "Chat with Maya",
                    "effects": [{"id": "chat-rel", "type": "relationship", "target": "maya", "value": 10}],
                },
                {
                    "id": "study",
                    "text": "Study",
                    "requirements": [
                        {"type": "resource", "condition": "energy", "value": 50, "description": "Energy 50"}
                    ],
                    "effects": [{"id": "study-know", "type": "resource", "target": "knowledge", "value": 3}],
                    "next_storylet_id": "library",
                },
                {"id": "locked", "text": "Locked door", "unlocked": False},
            ],
        },
        "library": {
            "title": "Library",
            "triggers": [{"type": "storylet_completion", "condition": "cafe", "description": "After the cafe"}],
            "choices": [{"id": "leave", "text": "Leave"}],
        },
    }


def _engine(repo: StoryletRepository | None = None, **kwargs) -> StoryletExecutionEngine:
    return StoryletExecutionEngine(repo or StoryletRepository(payload=_payload()), rng=RNG(1), **kwargs)


def test_missing_storylet_fails_without_state_change() -> None:
    engine = _engine()
    result = asyncio.run(engine.enter_storylet("nope"))
    assert result.success is False
    assert result.errors == ['Storylet with ID "nope" not found']
    assert engine.status == "idle"
    assert engine.history == ()


def test_unmet_entry_trigger_keeps_engine_idle() -> None:
    engine = _engine()
    result = asyncio.run(engine.enter_storylet("gym"))
    assert result.success is False
    assert result.errors == ["Storylet triggers not met: Energy of at least 150"]
    assert "Energy of at least 150" in result.errors[0]
    assert engine.status == "idle"
    assert engine.current_execution is None
    assert engine.history == ()
    assert engine.state.resources["energy"] == 100


def test_failed_entry_keeps_previous_current_result() -> None:
    engine = _engine()
    entered = asyncio.run(engine.enter_storylet("cafe"))
    asyncio.run(engine.enter_storylet("gym"))
    assert engine.current_execution is entered
    assert engine.status == "storylet_active"


def test_enter_applies_entry_effects_and_resolves_choices() -> None:
    engine = _engine()
    result = asyncio.run(engine.enter_storylet("cafe"))
    assert result.success is True
    assert result.storylet is not None and result.storylet.id == "cafe"
    assert [choice.id for choice in result.available_choices] == ["chat", "study"]
    assert [effect.id for effect in result.applied_effects] == ["coffee"]
    assert result.state_changes.resources == {"money": 95}
    assert result.execution_time >= 0
    assert engine.state.resources["money"] == 95
    assert engine.status == "storylet_active"
    assert engine.history == (result,)


def test_extra_context_only_affects_evaluation() -> None:
    engine = _engine()
    result = asyncio.run(engine.enter_storylet("gym", {"resources": {"energy": 200}}))
    assert result.success is True
    assert engine.state.resources["energy"] == 100


def test_take_choice_requires_active_storylet() -> None:
    engine = _engine()
    result = asyncio.run(engine.take_choice("chat"))
    assert result.success is False
    assert result.errors == ["No active storylet execution"]


def test_take_choice_rejects_unavailable_choice() -> None:
    engine = _engine()
    asyncio.run(engine.enter_storylet("cafe"))
    result = asyncio.run(engine.take_choice("locked"))
    assert result.success is False
    assert result.errors == ['Choice with ID "locked" not found or not available']
    assert engine.status == "storylet_active"


def test_take_choice_rechecks_requirements() -> None:
    engine = _engine()
    asyncio.run(engine.enter_storylet("cafe"))
    engine.state.resources["energy"] = 10
    result = asyncio.run(engine.take_choice("study"))
    assert result.success is False
    assert result.errors == ["Choice requirements no longer met"]
    assert "cafe" not in engine.state.completed_storylets


def test_unconditional_choice_completes_storylet_and_returns_to_idle() -> None:
    repo = StoryletRepository(payload=_payload())
    engine = _engine(repo)
    asyncio.run(engine.enter_storylet("cafe"))
    result = asyncio.run(engine.take_choice("chat"))
    assert result.success is True
    assert result.choice is not None and result.choice.id == "chat"
    assert engine.state.relationships["maya"] == 10
    assert "cafe" in engine.state.completed_storylets
    assert result.state_changes.completed_storylets == ["cafe"]
    assert repo.completed_ids() == frozenset({"cafe"})
    assert result.next_storylet_id is None
    assert result.next_result is None
    assert engine.status == "idle"
    assert engine.current_execution is None


def test_choice_with_next_storylet_chains_entry() -> None:
    engine = _engine()
    asyncio.run(engine.enter_storylet("cafe"))
    result = asyncio.run(engine.take_choice("study"))
    assert result.success is True
    assert engine.state.resources["knowledge"] == 3
    assert result.next_storylet_id == "library"
    assert result.next_result is not None and result.next_result.success
    assert engine.status == "storylet_active"
    current = engine.current_execution
    assert current is not None and current.storylet is not None
    assert current.storylet.id == "library"
    assert len(engine.history) == 2


def test_persistence_failure_is_reported_and_in_memory_change_stays() -> None:
    class FailingRepo(StoryletRepository):
        async def mark_completed(self, storylet_id: str) -> None:
            raise RuntimeError("disk full")

    engine = _engine(FailingRepo(payload=_payload()))
    asyncio.run(engine.enter_storylet("cafe"))
    result = asyncio.run(engine.take_choice("chat"))
    assert result.success is True
    assert result.errors == ["Failed to persist completion of storylet cafe: disk full"]
    assert "cafe" in engine.state.completed_storylets
    assert engine.status == "idle"


def test_effect_failures_are_reported_but_do_not_block_entry() -> None:
    engine = _engine(catalog=EffectCatalog(resources={"energy"}))
    result = asyncio.run(engine.enter_storylet("cafe"))
    assert result.success is True
    assert result.errors == ["Failed to apply effect coffee: Unknown resource 'money'"]
    assert engine.state.resources["money"] == 100


def test_cancel_and_clear_history() -> None:
    engine = _engine()
    asyncio.run(engine.enter_storylet("cafe"))
    money = engine.state.resources["money"]
    engine.cancel_current_execution()
    assert engine.status == "idle"
    assert engine.state.resources["money"] == money
    assert len(engine.history) == 1
    engine.clear_history()
    assert engine.history == ()


def test_independent_engines_do_not_share_state() -> None:
    first = _engine()
    second = _engine()
    asyncio.run(first.enter_storylet("cafe"))
    assert first.status == "storylet_active"
    assert second.status == "idle"
    assert second.state.resources["money"] == 100


def test_caller_state_is_never_mutated() -> None:
    repo = StoryletRepository(
        payload={
            "hall": {"title": "Hall", "choices": [{"id": "wait", "text": "Wait"}]},
            "yard": {
                "title": "Yard",
                "choices": [
                    {"id": "run", "text": "Run", "effects": [{"type": "resource", "target": "energy", "value": 5}]}
                ],
            },
        }
    )
    for storylet_id, choice_id in (("hall", "wait"), ("yard", "run")):
        initial = WorldState()
        engine = StoryletExecutionEngine(repo, state=initial, rng=RNG(1))
        asyncio.run(engine.enter_storylet(storylet_id))
        assert asyncio.run(engine.take_choice(choice_id)).success is True

        assert engine.state.completed_storylets == {storylet_id}
        assert engine.state is not initial
        assert initial == WorldState()
