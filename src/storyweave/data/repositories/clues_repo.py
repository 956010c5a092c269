"""Repository for clue definitions."""
from __future__ import annotations

from typing import Mapping

from storyweave.data.errors import DataValidationError
from storyweave.data.repositories.base import RepositoryBase
from storyweave.domain.defs import ClueDef

_IMPORTANCE = {"critical", "major", "minor", "trivial"}


class ClueRepository(RepositoryBase[ClueDef]):
    record_label = "clue"

    def __init__(self, base_path=None, *, payload: object | None = None) -> None:
        super().__init__("clues.json", base_path, payload=payload)

    def _parse_record(self, record_id: str, data: Mapping[str, object]) -> ClueDef:
        context = f"clue '{record_id}'"
        importance = data.get("importance", "minor")
        if importance not in _IMPORTANCE:
            raise DataValidationError(f"{context} importance '{importance}' is not supported.")
        return ClueDef(
            id=record_id,
            title=self._require_str(data.get("title"), f"{context} title"),
            description=self._optional_str(data.get("description"), f"{context} description") or "",
            category=self._optional_str(data.get("category"), f"{context} category") or "evidence",
            importance=importance,
            unlocks_storylets=self._str_list(data.get("unlocks_storylets"), f"{context} unlocks_storylets"),
        )
