"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, Sequence

from storyweave.domain.defs import ChoiceDef, StoryletDef
from storyweave.domain.effects import StateChanges
from storyweave.domain.state import WorldState
from storyweave.services.graph_store import GraphSnapshot

_WRAP_WIDTH = 76


def debug_enabled() -> bool:
    """Return True only when STORYWEAVE_DEBUG is explicitly set to '1'."""
    return os.getenv("STORYWEAVE_DEBUG") == "1"


def wrap_paragraphs(text: str, width: int = _WRAP_WIDTH) -> list[str]:
    """Wrap text on word boundaries, keeping blank lines between paragraphs."""
    lines: list[str] = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(textwrap.wrap(paragraph, width=width, break_long_words=False, break_on_hyphens=False))
    return lines


def render_heading(title: str) -> None:
    print(f"\n=== {title} ===")


def render_storylet(storylet: StoryletDef) -> None:
    render_heading(storylet.title)
    if debug_enabled():
        print(f"[{storylet.id}]")
    for line in wrap_paragraphs(storylet.content or storylet.description):
        print(line)


def render_choices(choices: Sequence[ChoiceDef]) -> None:
    """Display numbered choices; debug mode adds ids and targets."""
    if not choices:
        return
    render_heading("Choices")
    for idx, choice in enumerate(choices, start=1):
        line = f"{idx}. {choice.text}"
        if debug_enabled():
            line += f"  [{choice.id} -> {choice.next_storylet_id or '-'}]"
        print(line)


def render_bullet_lines(lines: Iterable[str]) -> None:
    for line in lines:
        print(f"- {line}")


def describe_changes(changes: StateChanges) -> list[str]:
    lines = [f"{name} is now {_number(value)}" for name, value in changes.resources.items()]
    lines.extend(
        f"relationship with {character} is now {_number(value)}"
        for character, value in changes.relationships.items()
    )
    if changes.game_time:
        lines.append(f"time advanced by {_number(changes.game_time)}")
    lines.extend(f"discovered clue {clue}" for clue in changes.discovered_clues)
    lines.extend(f"unlocked storylet {storylet}" for storylet in changes.unlocked_storylets)
    lines.extend(f"arc {arc} progressed by {_number(amount)}" for arc, amount in changes.arc_progress.items())
    lines.extend(f"completed storylet {storylet}" for storylet in changes.completed_storylets)
    return lines


def render_changes(changes: StateChanges) -> None:
    if changes.is_empty:
        return
    render_heading("Changes")
    render_bullet_lines(describe_changes(changes))


def render_messages(errors: Sequence[str], warnings: Sequence[str] = ()) -> None:
    for message in errors:
        print(f"! {message}")
    for message in warnings:
        print(f"? {message}")


def render_state(state: WorldState) -> None:
    render_heading("World State")
    render_bullet_lines(f"{name}: {_number(value)}" for name, value in sorted(state.resources.items()))
    print(f"- game time: {_number(state.game_time)}")
    if state.relationships:
        render_bullet_lines(
            f"{character}: {_number(value)}" for character, value in sorted(state.relationships.items())
        )
    if state.discovered_clues:
        print(f"- clues: {', '.join(sorted(state.discovered_clues))}")
    if state.completed_storylets:
        print(f"- completed: {', '.join(sorted(state.completed_storylets))}")


def render_graph(snapshot: GraphSnapshot) -> None:
    """Print nodes with their positions followed by the connection list."""
    titles = {node.id: node.data.title or node.id for node in snapshot.nodes}
    render_heading("Nodes")
    for node in snapshot.nodes:
        arc = f" <{node.data.arc_name}>" if node.data.arc_name else ""
        print(f"({_number(node.position.x)}, {_number(node.position.y)}) {node.kind}: {titles[node.id]}{arc}")
    render_heading("Connections")
    if not snapshot.connections:
        print("(none)")
    for connection in snapshot.connections:
        label = f" [{connection.label}]" if connection.label else ""
        print(f"{titles.get(connection.from_node_id, '?')} -> {titles.get(connection.to_node_id, '?')}{label}")


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
