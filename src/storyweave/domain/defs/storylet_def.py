"""Storylet definition structures used by the runtime and the graph editor."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Union

from storyweave.core.types import ComparisonOperator, EffectOperator, StoryletStatus


@dataclass(slots=True)
class ResourceTrigger:
    """Compares a named resource against a threshold."""

    kind: ClassVar[str] = "resource"

    id: str
    condition: str
    description: str = ""
    value: float = 0
    operator: ComparisonOperator = ">="


@dataclass(slots=True)
class RelationshipTrigger:
    """Compares the relationship value of a character against a threshold."""

    kind: ClassVar[str] = "relationship"

    id: str
    condition: str
    description: str = ""
    value: float = 0
    operator: ComparisonOperator = ">="


@dataclass(slots=True)
class TimeTrigger:
    """Compares elapsed game time against a threshold."""

    kind: ClassVar[str] = "time"

    id: str
    condition: str = ""
    description: str = ""
    value: float = 0
    operator: ComparisonOperator = ">="


@dataclass(slots=True)
class ClueTrigger:
    """Holds once the clue named by ``condition`` has been discovered."""

    kind: ClassVar[str] = "clue"

    id: str
    condition: str
    description: str = ""


@dataclass(slots=True)
class StoryletCompletionTrigger:
    """Holds once the storylet named by ``condition`` has been completed."""

    kind: ClassVar[str] = "storylet_completion"

    id: str
    condition: str
    description: str = ""


@dataclass(slots=True)
class RandomTrigger:
    """Percentage chance gate; ``value`` is read as a chance out of 100."""

    kind: ClassVar[str] = "random"

    id: str
    condition: str = ""
    description: str = ""
    value: float = 50


TriggerDef = Union[
    ResourceTrigger,
    RelationshipTrigger,
    TimeTrigger,
    ClueTrigger,
    StoryletCompletionTrigger,
    RandomTrigger,
]
ComparisonTrigger = Union[ResourceTrigger, RelationshipTrigger, TimeTrigger]


@dataclass(slots=True)
class ResourceEffect:
    kind: ClassVar[str] = "resource"

    id: str
    target: str
    value: float = 0
    operator: EffectOperator = "+"
    description: str = ""


@dataclass(slots=True)
class RelationshipEffect:
    kind: ClassVar[str] = "relationship"

    id: str
    target: str
    value: float = 0
    operator: EffectOperator = "+"
    description: str = ""


@dataclass(slots=True)
class ClueDiscoveryEffect:
    kind: ClassVar[str] = "clue_discovery"

    id: str
    target: str
    description: str = ""


@dataclass(slots=True)
class StoryletUnlockEffect:
    kind: ClassVar[str] = "storylet_unlock"

    id: str
    target: str
    description: str = ""


@dataclass(slots=True)
class ArcProgressEffect:
    kind: ClassVar[str] = "arc_progress"

    id: str
    target: str
    value: float = 1
    description: str = ""


@dataclass(slots=True)
class TimeAdvanceEffect:
    kind: ClassVar[str] = "time_advance"

    id: str
    target: str = ""
    value: float = 0
    description: str = ""


EffectDef = Union[
    ResourceEffect,
    RelationshipEffect,
    ClueDiscoveryEffect,
    StoryletUnlockEffect,
    ArcProgressEffect,
    TimeAdvanceEffect,
]


@dataclass(slots=True)
class ChoiceDef:
    """Represents a selectable choice on a storylet."""

    id: str
    text: str
    description: str | None = None
    effects: List[EffectDef] = field(default_factory=list)
    requirements: List[TriggerDef] = field(default_factory=list)
    probability: float | None = None
    unlocked: bool | None = None
    next_storylet_id: str | None = None


@dataclass(slots=True)
class StoryletDef:
    """Fully parsed storylet."""

    id: str
    title: str
    description: str = ""
    content: str = ""
    choices: List[ChoiceDef] = field(default_factory=list)
    effects: List[EffectDef] = field(default_factory=list)
    triggers: List[TriggerDef] = field(default_factory=list)
    status: StoryletStatus = "dev"
    arc_id: str | None = None
    tags: List[str] = field(default_factory=list)
    priority: int = 1
    estimated_play_time: int = 5
    prerequisites: List[str] = field(default_factory=list)
