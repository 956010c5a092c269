"""Repository for storylet definitions."""
from __future__ import annotations

import logging
from typing import List, Mapping, Set

from storyweave.core.types import EFFECT_KINDS, TRIGGER_KINDS
from storyweave.data.errors import DataValidationError, RecordNotFoundError
from storyweave.data.repositories.base import RepositoryBase
from storyweave.domain.defs import (
    ArcProgressEffect,
    ChoiceDef,
    ClueDiscoveryEffect,
    ClueTrigger,
    EffectDef,
    RandomTrigger,
    RelationshipEffect,
    RelationshipTrigger,
    ResourceEffect,
    ResourceTrigger,
    StoryletCompletionTrigger,
    StoryletDef,
    StoryletUnlockEffect,
    TimeAdvanceEffect,
    TimeTrigger,
    TriggerDef,
)

logger = logging.getLogger(__name__)

_COMPARISON_OPERATORS = {">", "<", "=", ">=", "<=", "!="}
_EFFECT_OPERATORS = {"+", "-", "=", "*"}
_STATUSES = {"dev", "stage", "live"}


class StoryletRepository(RepositoryBase[StoryletDef]):
    """Loads storylets, validates their structure and tracks completion."""

    record_label = "storylet"

    def __init__(self, base_path=None, *, payload: object | None = None) -> None:
        super().__init__("storylets.json", base_path, payload=payload)
        self._completed: Set[str] = set()

    async def mark_completed(self, storylet_id: str) -> None:
        """Record that a storylet was played through to a choice."""
        if storylet_id not in self._ensure_loaded():
            raise RecordNotFoundError(f"Storylet with id {storylet_id} not found")
        self._completed.add(storylet_id)
        logger.info("Storylet %s marked completed", storylet_id)

    def completed_ids(self) -> frozenset[str]:
        return frozenset(self._completed)

    def _parse_record(self, record_id: str, data: Mapping[str, object]) -> StoryletDef:
        context = f"storylet '{record_id}'"
        title = self._require_str(data.get("title"), f"{context} title")
        status = data.get("status", "dev")
        if status not in _STATUSES:
            raise DataValidationError(f"{context} status must be one of dev, stage, live.")
        priority = self._optional_number(data.get("priority"), f"{context} priority")
        play_time = self._optional_number(
            data.get("estimated_play_time"), f"{context} estimated_play_time"
        )
        return StoryletDef(
            id=record_id,
            title=title,
            description=self._optional_str(data.get("description"), f"{context} description") or "",
            content=self._optional_str(data.get("content"), f"{context} content") or "",
            choices=self.parse_choices(data.get("choices"), record_id),
            effects=self.parse_effects(data.get("effects"), f"{context} effects"),
            triggers=self.parse_triggers(data.get("triggers"), f"{context} triggers"),
            status=status,
            arc_id=self._optional_str(data.get("arc_id"), f"{context} arc_id"),
            tags=self._str_list(data.get("tags"), f"{context} tags"),
            priority=int(priority) if priority is not None else 1,
            estimated_play_time=int(play_time) if play_time is not None else 5,
            prerequisites=self._str_list(data.get("prerequisites"), f"{context} prerequisites"),
        )

    def _coerce_patch(self, record_id: str, patch: Mapping[str, object]) -> dict[str, object]:
        coerced = dict(patch)
        context = f"storylet '{record_id}'"
        if _has_raw_items(coerced.get("choices")):
            coerced["choices"] = self.parse_choices(coerced["choices"], record_id)
        if _has_raw_items(coerced.get("effects")):
            coerced["effects"] = self.parse_effects(coerced["effects"], f"{context} effects")
        if _has_raw_items(coerced.get("triggers")):
            coerced["triggers"] = self.parse_triggers(coerced["triggers"], f"{context} triggers")
        return coerced

    def parse_triggers(self, raw_triggers: object, context: str) -> List[TriggerDef]:
        if raw_triggers is None:
            return []
        if not isinstance(raw_triggers, list):
            raise DataValidationError(f"{context} must be a list if provided.")
        triggers: List[TriggerDef] = []
        for index, entry in enumerate(raw_triggers):
            trigger_ctx = f"{context}[{index}]"
            trigger_data = self._require_mapping(entry, trigger_ctx)
            trigger_type = self._require_str(trigger_data.get("type"), f"{trigger_ctx} type")
            if trigger_type not in TRIGGER_KINDS:
                raise DataValidationError(f"{trigger_ctx} has unknown trigger type '{trigger_type}'.")
            trigger_id = self._optional_str(trigger_data.get("id"), f"{trigger_ctx} id") or trigger_ctx
            condition = self._optional_str(trigger_data.get("condition"), f"{trigger_ctx} condition") or ""
            description = (
                self._optional_str(trigger_data.get("description"), f"{trigger_ctx} description") or ""
            )
            value = self._optional_number(trigger_data.get("value"), f"{trigger_ctx} value")
            if trigger_type in ("resource", "relationship", "time"):
                operator = trigger_data.get("operator", ">=")
                if operator not in _COMPARISON_OPERATORS:
                    raise DataValidationError(f"{trigger_ctx} operator '{operator}' is not supported.")
                trigger_cls = {
                    "resource": ResourceTrigger,
                    "relationship": RelationshipTrigger,
                    "time": TimeTrigger,
                }[trigger_type]
                triggers.append(
                    trigger_cls(
                        id=trigger_id,
                        condition=condition,
                        description=description,
                        value=value if value is not None else 0,
                        operator=operator,
                    )
                )
            elif trigger_type == "clue":
                triggers.append(ClueTrigger(id=trigger_id, condition=condition, description=description))
            elif trigger_type == "storylet_completion":
                triggers.append(
                    StoryletCompletionTrigger(id=trigger_id, condition=condition, description=description)
                )
            else:
                triggers.append(
                    RandomTrigger(
                        id=trigger_id,
                        condition=condition,
                        description=description,
                        value=value if value is not None else 50,
                    )
                )
        return triggers

    def parse_effects(self, raw_effects: object, context: str) -> List[EffectDef]:
        if raw_effects is None:
            return []
        if not isinstance(raw_effects, list):
            raise DataValidationError(f"{context} must be a list if provided.")
        effects: List[EffectDef] = []
        for index, entry in enumerate(raw_effects):
            effect_ctx = f"{context}[{index}]"
            effect_data = self._require_mapping(entry, effect_ctx)
            effect_type = self._require_str(effect_data.get("type"), f"{effect_ctx} type")
            if effect_type not in EFFECT_KINDS:
                raise DataValidationError(f"{effect_ctx} has unknown effect type '{effect_type}'.")
            effect_id = self._optional_str(effect_data.get("id"), f"{effect_ctx} id") or effect_ctx
            target = self._optional_str(effect_data.get("target"), f"{effect_ctx} target") or ""
            description = self._optional_str(effect_data.get("description"), f"{effect_ctx} description") or ""
            value = self._optional_number(effect_data.get("value"), f"{effect_ctx} value")
            if effect_type in ("resource", "relationship"):
                operator = effect_data.get("operator", "+")
                if operator not in _EFFECT_OPERATORS:
                    raise DataValidationError(f"{effect_ctx} operator '{operator}' is not supported.")
                effect_cls = ResourceEffect if effect_type == "resource" else RelationshipEffect
                effects.append(
                    effect_cls(
                        id=effect_id,
                        target=target,
                        value=value if value is not None else 0,
                        operator=operator,
                        description=description,
                    )
                )
            elif effect_type == "clue_discovery":
                effects.append(ClueDiscoveryEffect(id=effect_id, target=target, description=description))
            elif effect_type == "storylet_unlock":
                effects.append(StoryletUnlockEffect(id=effect_id, target=target, description=description))
            elif effect_type == "arc_progress":
                effects.append(
                    ArcProgressEffect(
                        id=effect_id,
                        target=target,
                        value=value if value is not None else 1,
                        description=description,
                    )
                )
            else:
                effects.append(
                    TimeAdvanceEffect(
                        id=effect_id,
                        target=target,
                        value=value if value is not None else 0,
                        description=description,
                    )
                )
        return effects

    def parse_choices(self, raw_choices: object, storylet_id: str) -> List[ChoiceDef]:
        if raw_choices is None:
            return []
        if not isinstance(raw_choices, list):
            raise DataValidationError(f"storylet '{storylet_id}' choices must be a list if provided.")
        choices: List[ChoiceDef] = []
        for index, entry in enumerate(raw_choices):
            if isinstance(entry, ChoiceDef):
                choices.append(entry)
                continue
            choice_ctx = f"storylet '{storylet_id}' choices[{index}]"
            choice_mapping = self._require_mapping(entry, choice_ctx)
            probability = self._optional_number(choice_mapping.get("probability"), f"{choice_ctx} probability")
            unlocked = choice_mapping.get("unlocked")
            if unlocked is not None and not isinstance(unlocked, bool):
                raise DataValidationError(f"{choice_ctx} unlocked must be a boolean if provided.")
            choices.append(
                ChoiceDef(
                    id=self._optional_str(choice_mapping.get("id"), f"{choice_ctx} id")
                    or f"{storylet_id}-choice-{index + 1}",
                    text=self._require_str(choice_mapping.get("text"), f"{choice_ctx} text"),
                    description=self._optional_str(
                        choice_mapping.get("description"), f"{choice_ctx} description"
                    ),
                    effects=self.parse_effects(choice_mapping.get("effects"), f"{choice_ctx} effects"),
                    requirements=self.parse_triggers(
                        choice_mapping.get("requirements"), f"{choice_ctx} requirements"
                    ),
                    probability=probability,
                    unlocked=unlocked,
                    next_storylet_id=self._optional_str(
                        choice_mapping.get("next_storylet_id"), f"{choice_ctx} next_storylet_id"
                    ),
                )
            )
        return choices


def _has_raw_items(value: object) -> bool:
    return isinstance(value, list) and any(isinstance(item, dict) for item in value)
