"""Story arc definition."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class ArcDef:
    """Groups storylets into a named narrative arc."""

    id: str
    name: str
    description: str = ""
    estimated_length: int | None = None
    prerequisites: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
