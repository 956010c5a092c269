"""Domain definition exports."""

from .arc_def import ArcDef
from .character_def import CharacterDef
from .clue_def import ClueDef
from .storylet_def import (
    ArcProgressEffect,
    ChoiceDef,
    ClueDiscoveryEffect,
    ClueTrigger,
    ComparisonTrigger,
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

__all__ = [
    "ArcDef",
    "ArcProgressEffect",
    "CharacterDef",
    "ChoiceDef",
    "ClueDef",
    "ClueDiscoveryEffect",
    "ClueTrigger",
    "ComparisonTrigger",
    "EffectDef",
    "RandomTrigger",
    "RelationshipEffect",
    "RelationshipTrigger",
    "ResourceEffect",
    "ResourceTrigger",
    "StoryletCompletionTrigger",
    "StoryletDef",
    "StoryletUnlockEffect",
    "TimeAdvanceEffect",
    "TimeTrigger",
    "TriggerDef",
]
