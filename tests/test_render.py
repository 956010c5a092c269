"""Tests for CLI rendering utilities."""
import pytest

from storyweave.domain.defs import ChoiceDef
from storyweave.domain.effects import StateChanges
from storyweave.domain.graph_models import NodeData, Position
from storyweave.domain.state import WorldState
from storyweave.presentation.cli.render import (
    describe_changes,
    render_choices,
    render_graph,
    render_state,
    wrap_paragraphs,
)
from storyweave.services import GraphStore


def test_wrap_paragraphs_keeps_words_and_blank_lines() -> None:
    text = "This is a fairly long line that has to be wrapped somewhere sensible\n\nSecond"
    lines = wrap_paragraphs(text, width=30)

    assert all(len(line) <= 30 for line in lines)
    assert lines[-2:] == ["", "Second"]
    assert " ".join(line for line in lines[:-2]) == text.split("\n")[0]


def test_describe_changes_lists_every_kind() -> None:
    changes = StateChanges(
        resources={"energy": 85.0},
        relationships={"maya": 10},
        game_time=1.5,
        discovered_clues=["card"],
        unlocked_storylets=["stacks"],
        arc_progress={"arrival": 1},
        completed_storylets=["intro"],
    )

    assert describe_changes(changes) == [
        "energy is now 85",
        "relationship with maya is now 10",
        "time advanced by 1.5",
        "discovered clue card",
        "unlocked storylet stacks",
        "arc arrival progressed by 1",
        "completed storylet intro",
    ]


def test_render_choices_shows_ids_only_in_debug(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    choices = [ChoiceDef(id="go", text="Go on", next_storylet_id="hall")]

    monkeypatch.delenv("STORYWEAVE_DEBUG", raising=False)
    render_choices(choices)
    assert "1. Go on\n" in capsys.readouterr().out

    monkeypatch.setenv("STORYWEAVE_DEBUG", "1")
    render_choices(choices)
    assert "1. Go on  [go -> hall]" in capsys.readouterr().out


def test_render_state_is_sorted(capsys) -> None:
    render_state(WorldState(resources={"money": 5, "energy": 90.0}, relationships={"maya": 3}))
    out = capsys.readouterr().out.splitlines()

    assert out[1:] == ["=== World State ===", "- energy: 90", "- money: 5", "- game time: 0", "- maya: 3"]


def test_render_graph_lists_nodes_and_connections(capsys) -> None:
    store = GraphStore()
    intro = store.add_node("storylet", Position(200, 100), NodeData(title="Intro", arc_name="Arrival"))
    hall = store.add_node("storylet", Position(450.0, 100), NodeData(title="Hall"))
    store.add_connection(intro, hall, label="Walk")

    render_graph(store.snapshot())
    out = capsys.readouterr().out

    assert "(200, 100) storylet: Intro <Arrival>" in out
    assert "(450, 100) storylet: Hall\n" in out
    assert "Intro -> Hall [Walk]" in out


def test_render_graph_without_connections(capsys) -> None:
    render_graph(GraphStore().snapshot())
    assert "(none)" in capsys.readouterr().out
