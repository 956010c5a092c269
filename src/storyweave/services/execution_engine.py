"""Storylet execution: entering storylets and taking choices."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Mapping

from storyweave.core.rng import RNG
from storyweave.core.types import EngineStatus
from storyweave.data.repositories import StoryletRepository
from storyweave.domain.defs import ChoiceDef, EffectDef, StoryletDef
from storyweave.domain.effects import EffectCatalog, EffectChange, StateChanges, apply_effects
from storyweave.domain.state import WorldState
from storyweave.domain.triggers import evaluate_all
from storyweave.services.choice_resolver import requirements_met, resolve_choices

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of entering a storylet."""

    success: bool
    storylet: StoryletDef | None = None
    available_choices: List[ChoiceDef] = field(default_factory=list)
    applied_effects: List[EffectDef] = field(default_factory=list)
    changes: List[EffectChange] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    state_changes: StateChanges = field(default_factory=StateChanges)
    execution_time: float = 0.0


@dataclass(slots=True)
class ChoiceExecutionResult:
    """Outcome of taking a choice; ``next_result`` holds the chained entry."""

    success: bool
    choice: ChoiceDef | None = None
    applied_effects: List[EffectDef] = field(default_factory=list)
    changes: List[EffectChange] = field(default_factory=list)
    next_storylet_id: str | None = None
    next_result: ExecutionResult | None = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    state_changes: StateChanges = field(default_factory=StateChanges)


class StoryletExecutionEngine:
    """Runs storylets against a world state.

    The engine is idle until a storylet is entered successfully, at which
    point that result becomes current until a choice is taken or the
    execution is cancelled. Only one result is ever current.
    """

    def __init__(
        self,
        storylet_repo: StoryletRepository,
        *,
        state: WorldState | None = None,
        rng: RNG | None = None,
        catalog: EffectCatalog | None = None,
    ) -> None:
        self._storylet_repo = storylet_repo
        self._state = state if state is not None else WorldState()
        self._rng = rng or RNG()
        self._catalog = catalog
        self._current: ExecutionResult | None = None
        self._history: List[ExecutionResult] = []

    @property
    def state(self) -> WorldState:
        return self._state

    @property
    def status(self) -> EngineStatus:
        return "storylet_active" if self._current is not None else "idle"

    @property
    def current_execution(self) -> ExecutionResult | None:
        return self._current

    @property
    def history(self) -> tuple[ExecutionResult, ...]:
        return tuple(self._history)

    def clear_history(self) -> None:
        self._history = []

    def cancel_current_execution(self) -> None:
        """Return to idle without touching the world state."""
        self._current = None

    def restore_state(self, state: WorldState) -> None:
        """Swap in a loaded world state; any current execution is dropped."""
        self._state = state
        self._current = None

    async def enter_storylet(
        self, storylet_id: str, extra_context: Mapping[str, object] | None = None
    ) -> ExecutionResult:
        """Evaluate a storylet's triggers and, if met, make it the current execution.

        ``extra_context`` overrides world state fields for trigger and choice
        evaluation only; effects are always applied to the engine's state.
        """
        started = time.perf_counter()
        storylet = await self._storylet_repo.get(storylet_id)
        if storylet is None:
            return ExecutionResult(
                success=False,
                errors=[f'Storylet with ID "{storylet_id}" not found'],
                execution_time=time.perf_counter() - started,
            )

        try:
            context = self._state.with_overrides(extra_context)
        except ValueError as exc:
            return ExecutionResult(
                success=False,
                storylet=storylet,
                errors=[f"Invalid execution context: {exc}"],
                execution_time=time.perf_counter() - started,
            )

        trigger_check = evaluate_all(storylet.triggers, context, self._rng)
        if not trigger_check.all_met:
            logger.debug("Storylet %s triggers not met: %s", storylet_id, trigger_check.failed_descriptions)
            return ExecutionResult(
                success=False,
                storylet=storylet,
                errors=[f"Storylet triggers not met: {', '.join(trigger_check.failed_descriptions)}"],
                execution_time=time.perf_counter() - started,
            )

        batch = apply_effects(self._state, storylet.effects, self._catalog)
        self._state = batch.state
        available = resolve_choices(
            storylet.choices, self._state.with_overrides(extra_context), self._rng
        )
        result = ExecutionResult(
            success=True,
            storylet=storylet,
            available_choices=available,
            applied_effects=batch.applied,
            changes=batch.changes,
            errors=batch.errors,
            warnings=batch.warnings,
            state_changes=batch.state_changes,
            execution_time=time.perf_counter() - started,
        )
        self._current = result
        self._history.append(result)
        logger.debug("Entered storylet %s with %d choices", storylet_id, len(available))
        return result

    async def take_choice(self, choice_id: str) -> ChoiceExecutionResult:
        """Apply a presented choice, complete the storylet and follow its link."""
        current = self._current
        if current is None or current.storylet is None:
            return ChoiceExecutionResult(success=False, errors=["No active storylet execution"])

        choice = next((item for item in current.available_choices if item.id == choice_id), None)
        if choice is None:
            return ChoiceExecutionResult(
                success=False,
                errors=[f'Choice with ID "{choice_id}" not found or not available'],
            )
        if not requirements_met(choice, self._state, self._rng):
            return ChoiceExecutionResult(
                success=False, choice=choice, errors=["Choice requirements no longer met"]
            )

        storylet_id = current.storylet.id
        batch = apply_effects(self._state, choice.effects, self._catalog)
        completed = batch.state.copy()
        completed.completed_storylets.add(storylet_id)
        self._state = completed
        batch.state_changes.completed_storylets.append(storylet_id)
        self._current = None

        result = ChoiceExecutionResult(
            success=True,
            choice=choice,
            applied_effects=batch.applied,
            changes=batch.changes,
            next_storylet_id=choice.next_storylet_id,
            errors=batch.errors,
            warnings=batch.warnings,
            state_changes=batch.state_changes,
        )
        try:
            await self._storylet_repo.mark_completed(storylet_id)
        except Exception as exc:
            # The in-memory completion stands; the caller reconciles persistence.
            logger.error("Failed to persist completion of storylet %s: %s", storylet_id, exc)
            result.errors.append(f"Failed to persist completion of storylet {storylet_id}: {exc}")

        if choice.next_storylet_id:
            result.next_result = await self.enter_storylet(choice.next_storylet_id)
        return result
