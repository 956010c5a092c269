from __future__ import annotations

import json

import pytest

from storyweave.data.repositories import StoryletRepository
from storyweave.domain.state import WorldState
from storyweave.services import SaveLoadError, SaveService


def _repo() -> StoryletRepository:
    return StoryletRepository(payload={"intro": {"title": "Intro"}, "hall": {"title": "Hall"}})


def _state() -> WorldState:
    return WorldState(
        resources={"energy": 80, "money": 12.5},
        game_time=3,
        discovered_clues={"key", "map"},
        completed_storylets={"intro"},
        relationships={"maya": 10},
        flags={"met_maya": True},
        variables={"mood": "curious"},
        current_arc_id="arrival",
    )


def test_round_trip_through_json() -> None:
    service = SaveService(storylet_repo=_repo())
    payload = service.serialize(_state(), current_storylet_id="hall")

    assert payload["save_version"] == SaveService.SAVE_VERSION
    assert payload["metadata"]["completed_count"] == 1
    assert payload["state"]["discovered_clues"] == ["key", "map"]

    loaded = service.deserialize(json.loads(json.dumps(payload)))
    assert loaded.state == _state()
    assert loaded.current_storylet_id == "hall"


def test_version_mismatch_is_rejected() -> None:
    service = SaveService()
    payload = service.serialize(WorldState())
    payload["save_version"] = 99
    with pytest.raises(SaveLoadError, match="Save format changed"):
        service.deserialize(payload)


@pytest.mark.parametrize(
    "mutate, message",
    [
        (lambda payload: payload.pop("state"), "missing required sections"),
        (lambda payload: payload["state"].update(resources=[]), "state.resources must be an object"),
        (lambda payload: payload["state"].update(game_time="noon"), "state.game_time must be a number"),
        (lambda payload: payload["state"].update(discovered_clues=[1]), "list of strings"),
        (lambda payload: payload["state"].update(flags={"met": "yes"}), "state.flags.met must be a boolean"),
        (lambda payload: payload["state"]["resources"].update(energy=True), "state.resources.energy"),
    ],
)
def test_malformed_sections_are_rejected(mutate, message: str) -> None:
    service = SaveService()
    payload = service.serialize(_state())
    mutate(payload)
    with pytest.raises(SaveLoadError, match=message):
        service.deserialize(payload)


def test_non_object_payload_is_rejected() -> None:
    with pytest.raises(SaveLoadError, match="JSON object"):
        SaveService().deserialize(["not", "a", "save"])  # type: ignore[arg-type]


def test_unknown_storylets_are_rejected_when_repository_is_known() -> None:
    state = _state()
    state.completed_storylets.add("ghost")
    payload = SaveService().serialize(state)

    assert SaveService().deserialize(payload).state.completed_storylets == {"intro", "ghost"}
    with pytest.raises(SaveLoadError, match="references unknown storylets: ghost"):
        SaveService(storylet_repo=_repo()).deserialize(payload)
