"""Shared type aliases for the core and domain layers."""
from typing import Literal

NodeKind = Literal["start", "storylet", "end", "choice", "condition"]
StoryletStatus = Literal["dev", "stage", "live"]
ComparisonOperator = Literal[">", "<", "=", ">=", "<=", "!="]
EffectOperator = Literal["+", "-", "=", "*"]
EngineStatus = Literal["idle", "storylet_active"]
SyncStatus = Literal["created", "skipped", "failed"]

TRIGGER_KINDS = ("resource", "relationship", "time", "clue", "storylet_completion", "random")
EFFECT_KINDS = (
    "resource",
    "relationship",
    "clue_discovery",
    "storylet_unlock",
    "arc_progress",
    "time_advance",
)

__all__ = [
    "ComparisonOperator",
    "EFFECT_KINDS",
    "EffectOperator",
    "EngineStatus",
    "NodeKind",
    "StoryletStatus",
    "SyncStatus",
    "TRIGGER_KINDS",
]
