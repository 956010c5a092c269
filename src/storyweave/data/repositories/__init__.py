"""Repository exports."""

from .arcs_repo import ArcRepository
from .base import RepositoryBase
from .characters_repo import CharacterRepository
from .clues_repo import ClueRepository
from .storylets_repo import StoryletRepository

__all__ = [
    "ArcRepository",
    "CharacterRepository",
    "ClueRepository",
    "RepositoryBase",
    "StoryletRepository",
]
