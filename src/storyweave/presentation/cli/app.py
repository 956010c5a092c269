"""Console entry points: sandbox play loop, validation and graph listing."""
from __future__ import annotations

import argparse
import asyncio
import logging
import secrets
from pathlib import Path
from typing import Sequence

from storyweave.core.rng import RNG
from storyweave.data.errors import DataError
from storyweave.data.json_loader import load_json
from storyweave.data.repositories import ArcRepository, StoryletRepository
from storyweave.domain.defs import ArcDef, StoryletDef
from storyweave.presentation.cli import config as cli_config
from storyweave.presentation.cli.render import (
    render_changes,
    render_choices,
    render_graph,
    render_heading,
    render_messages,
    render_state,
    render_storylet,
)
from storyweave.presentation.cli.save_slots import SaveSlotStore
from storyweave.services import (
    ChoiceExecutionResult,
    ExecutionResult,
    GraphStore,
    GridLayout,
    SaveLoadError,
    SaveService,
    StoryletExecutionEngine,
)
from storyweave.services.story_graph_validator import format_issue, has_errors, validate_storylets

logger = logging.getLogger(__name__)

_MAX_RANDOM_SEED = 2**31 - 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storyweave", description="Play, validate and inspect storylets.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    play = subparsers.add_parser("play", help="Step through storylets in an interactive sandbox.")
    play.add_argument("storylets", nargs="?", help="Storylets JSON file (defaults to the data directory).")
    play.add_argument("--start", help="Id of the storylet to enter first.")
    play.add_argument("--seed", type=int, help="Seed for random triggers and choices.")
    play.add_argument("--save-dir", help="Directory holding save slots.")

    validate = subparsers.add_parser("validate", help="Report problems in a storylets file.")
    validate.add_argument("storylets", nargs="?", help="Storylets JSON file (defaults to the data directory).")

    graph = subparsers.add_parser("graph", help="Derive and print the storylet graph.")
    graph.add_argument("storylets", nargs="?", help="Storylets JSON file (defaults to the data directory).")
    graph.add_argument("--arcs", help="Arcs JSON file used for arc names.")
    graph.add_argument("--arc", help="Only show the storylets of this arc.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return a process exit code."""
    args = build_parser().parse_args(argv)
    config = cli_config.load_config()
    logging.basicConfig(
        level=cli_config.resolve_log_level(config),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "validate":
            return _run_validate(args.storylets)
        if args.command == "graph":
            return _run_graph(args.storylets, args.arcs, args.arc, config)
        seed = args.seed if args.seed is not None else config.get("seed")
        return _run_play(args.storylets, args.start, seed, args.save_dir)
    except DataError as exc:
        print(f"Could not load storylets: {exc}")
        return 2


def _storylet_repo(path: str | None) -> StoryletRepository:
    if path is None:
        return StoryletRepository()
    return StoryletRepository(payload=load_json(Path(path)))


def _run_validate(path: str | None) -> int:
    if path is None:
        repo = StoryletRepository()
        items: object = repo.all()
        source = "data directory"
    else:
        raw = load_json(Path(path))
        source = path
        if isinstance(raw, list):
            items = [(entry.get("id") if isinstance(entry, dict) else None, entry) for entry in raw]
        elif isinstance(raw, dict):
            items = raw
        else:
            print(f"{path} must contain a JSON object or list.")
            return 1
    issues = validate_storylets(items)
    for issue in issues:
        print(format_issue(issue))
    if has_errors(issues):
        print(f"Validation failed for {source}.")
        return 1
    print(f"Validation passed for {source}.")
    return 0


def _run_graph(path: str | None, arcs_path: str | None, arc_id: str | None, config: dict) -> int:
    storylets = _storylet_repo(path).all()
    arcs: list[ArcDef] = []
    if arcs_path is not None:
        arcs = ArcRepository(payload=load_json(Path(arcs_path))).all()
    arc = None
    if arc_id is not None:
        arc = next((candidate for candidate in arcs if candidate.id == arc_id), None)
        if arc is None:
            print(f"Unknown arc '{arc_id}'.")
            return 1
    store = GraphStore(layout=GridLayout(columns=int(config.get("layout_columns", 5))))
    store.build_from_storylets(storylets, arc=arc, arcs=arcs)
    render_graph(store.snapshot())
    return 0


def _run_play(path: str | None, start_id: str | None, seed: int | None, save_dir: str | None) -> int:
    repo = _storylet_repo(path)
    storylets = repo.all()
    if not storylets:
        print("No storylets to play.")
        return 1
    if seed is None:
        seed = secrets.randbelow(_MAX_RANDOM_SEED)
    print(f"Sandbox started with seed: {seed}")
    engine = StoryletExecutionEngine(repo, rng=RNG(seed))
    session = _PlaySession(engine, SaveService(storylet_repo=repo), SaveSlotStore(save_dir))
    asyncio.run(session.run(start_id or _default_start(storylets)))
    print("Goodbye!")
    return 0


def _default_start(storylets: Sequence[StoryletDef]) -> str:
    """First storylet, by id, that no choice leads to."""
    targeted = {choice.next_storylet_id for storylet in storylets for choice in storylet.choices}
    for storylet in storylets:
        if storylet.id not in targeted:
            return storylet.id
    return storylets[0].id


class _PlaySession:
    """Input loop over a single engine; commands are typed at the prompt."""

    def __init__(self, engine: StoryletExecutionEngine, save_service: SaveService, slots: SaveSlotStore) -> None:
        self._engine = engine
        self._save_service = save_service
        self._slots = slots

    async def run(self, start_id: str) -> None:
        self._show_entry(await self._engine.enter_storylet(start_id))
        while True:
            current = self._engine.current_execution
            if current is None:
                raw = input("\nStorylet id to enter, 'state', 'save N', 'load N' or 'quit': ").strip()
            else:
                raw = input("\nChoice number, 'state', 'save N', 'load N' or 'quit': ").strip()
            if not raw:
                continue
            command, _, argument = raw.partition(" ")
            if command in ("quit", "q"):
                return
            if command == "state":
                render_state(self._engine.state)
            elif command == "save":
                self._save(argument)
            elif command == "load":
                self._load(argument)
            elif current is None:
                self._show_entry(await self._engine.enter_storylet(raw))
            else:
                await self._choose(raw, current)

    async def _choose(self, raw: str, current: ExecutionResult) -> None:
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            return
        if not 0 <= index < len(current.available_choices):
            print(f"Please enter a value between 1 and {len(current.available_choices)}.")
            return
        result = await self._engine.take_choice(current.available_choices[index].id)
        self._show_choice(result)

    def _show_entry(self, result: ExecutionResult) -> None:
        if not result.success or result.storylet is None:
            render_messages(result.errors)
            return
        render_storylet(result.storylet)
        render_changes(result.state_changes)
        render_messages(result.errors, result.warnings)
        if result.available_choices:
            render_choices(result.available_choices)
        else:
            print("\n(No choices available.)")

    def _show_choice(self, result: ChoiceExecutionResult) -> None:
        render_changes(result.state_changes)
        render_messages(result.errors, result.warnings)
        if result.next_result is not None:
            self._show_entry(result.next_result)
        elif result.success:
            render_heading("End of thread")

    def _save(self, argument: str) -> None:
        slot = _parse_slot(argument, self._slots.slot_count)
        if slot is None:
            return
        current = self._engine.current_execution
        current_id = current.storylet.id if current is not None and current.storylet is not None else None
        self._slots.write_slot(slot, self._save_service.serialize(self._engine.state, current_storylet_id=current_id))
        print(f"Saved to slot {slot}.")

    def _load(self, argument: str) -> None:
        slot = _parse_slot(argument, self._slots.slot_count)
        if slot is None:
            return
        try:
            loaded = self._save_service.deserialize(self._slots.read_slot(slot))
        except SaveLoadError as exc:
            print(f"Could not load slot {slot}: {exc}")
            return
        self._engine.restore_state(loaded.state)
        print(f"Loaded slot {slot}.")
        if loaded.current_storylet_id:
            print(f"You were in storylet {loaded.current_storylet_id}.")


def _parse_slot(argument: str, slot_count: int) -> int | None:
    try:
        slot = int(argument)
    except ValueError:
        print(f"Please name a slot between 1 and {slot_count}.")
        return None
    if not 1 <= slot <= slot_count:
        print(f"Please name a slot between 1 and {slot_count}.")
        return None
    return slot
