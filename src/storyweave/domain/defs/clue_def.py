"""Clue definition."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

ClueImportance = Literal["critical", "major", "minor", "trivial"]


@dataclass(slots=True)
class ClueDef:
    """A discoverable piece of information."""

    id: str
    title: str
    description: str = ""
    category: str = "evidence"
    importance: ClueImportance = "minor"
    unlocks_storylets: List[str] = field(default_factory=list)
