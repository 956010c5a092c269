"""Service layer exports."""

from .choice_resolver import is_presentable, requirements_met, resolve_choices
from .choice_sync import ChoiceSyncListener, ConnectionChannel, ConnectionCreated, SyncOutcome
from .errors import SaveLoadError
from .execution_engine import ChoiceExecutionResult, ExecutionResult, StoryletExecutionEngine
from .graph_store import GraphSnapshot, GraphStore, GridLayout, SaveFailure, SaveReport
from .save_service import LoadedGame, SaveService

__all__ = [
    "ChoiceExecutionResult",
    "ChoiceSyncListener",
    "ConnectionChannel",
    "ConnectionCreated",
    "ExecutionResult",
    "GraphSnapshot",
    "GraphStore",
    "GridLayout",
    "LoadedGame",
    "SaveFailure",
    "SaveLoadError",
    "SaveReport",
    "SaveService",
    "StoryletExecutionEngine",
    "SyncOutcome",
    "is_presentable",
    "requirements_met",
    "resolve_choices",
]
