from __future__ import annotations

from pathlib import Path

import pytest

from storyweave.data import paths
from storyweave.data.json_loader import load_json
from storyweave.data.repositories import (
    ArcRepository,
    CharacterRepository,
    ClueRepository,
    StoryletRepository,
)
from storyweave.services.story_graph_validator import format_issue, validate_storylets


@pytest.fixture(scope="module")
def definitions_dir() -> Path:
    """Return the canonical definitions directory."""
    return paths.get_definitions_path()


@pytest.mark.parametrize("filename", ["storylets.json", "arcs.json", "characters.json", "clues.json"])
def test_definition_files_are_valid_json(definitions_dir: Path, filename: str) -> None:
    assert isinstance(load_json(definitions_dir / filename), dict)


def test_bundled_storylets_have_no_errors() -> None:
    issues = validate_storylets(StoryletRepository().all())
    errors = [format_issue(issue) for issue in issues if issue.severity == "ERROR"]
    assert errors == []


def test_cross_references_resolve() -> None:
    storylets = StoryletRepository().all()
    storylet_ids = {storylet.id for storylet in storylets}
    arc_ids = ArcRepository().ids()
    character_ids = CharacterRepository().ids()
    clue_ids = ClueRepository().ids()

    for storylet in storylets:
        assert storylet.arc_id is None or storylet.arc_id in arc_ids
        effects = list(storylet.effects)
        for choice in storylet.choices:
            effects.extend(choice.effects)
        for effect in effects:
            if effect.kind == "relationship":
                assert effect.target in character_ids, storylet.id
            elif effect.kind == "clue_discovery":
                assert effect.target in clue_ids, storylet.id
            elif effect.kind == "storylet_unlock":
                assert effect.target in storylet_ids, storylet.id
            elif effect.kind == "arc_progress":
                assert effect.target in arc_ids, storylet.id

    for arc in ArcRepository().all():
        assert set(arc.prerequisites) <= arc_ids
    for clue in ClueRepository().all():
        assert set(clue.unlocks_storylets) <= storylet_ids
