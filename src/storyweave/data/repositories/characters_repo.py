"""Repository for character definitions."""
from __future__ import annotations

from typing import Mapping

from storyweave.data.errors import DataValidationError
from storyweave.data.repositories.base import RepositoryBase
from storyweave.domain.defs import CharacterDef

_CATEGORIES = {"main", "supporting", "background", "antagonist", "ally"}


class CharacterRepository(RepositoryBase[CharacterDef]):
    record_label = "character"

    def __init__(self, base_path=None, *, payload: object | None = None) -> None:
        super().__init__("characters.json", base_path, payload=payload)

    def _parse_record(self, record_id: str, data: Mapping[str, object]) -> CharacterDef:
        context = f"character '{record_id}'"
        category = data.get("category", "supporting")
        if category not in _CATEGORIES:
            raise DataValidationError(f"{context} category '{category}' is not supported.")
        return CharacterDef(
            id=record_id,
            name=self._require_str(data.get("name"), f"{context} name"),
            display_name=self._optional_str(data.get("display_name"), f"{context} display_name"),
            description=self._optional_str(data.get("description"), f"{context} description") or "",
            category=category,
            tags=self._str_list(data.get("tags"), f"{context} tags"),
        )
