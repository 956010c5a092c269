"""Character definition."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

CharacterCategory = Literal["main", "supporting", "background", "antagonist", "ally"]


@dataclass(slots=True)
class CharacterDef:
    id: str
    name: str
    display_name: str | None = None
    description: str = ""
    category: CharacterCategory = "supporting"
    tags: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.display_name or self.name
