"""Repository for story arc definitions."""
from __future__ import annotations

from typing import Mapping

from storyweave.data.repositories.base import RepositoryBase
from storyweave.domain.defs import ArcDef


class ArcRepository(RepositoryBase[ArcDef]):
    record_label = "arc"

    def __init__(self, base_path=None, *, payload: object | None = None) -> None:
        super().__init__("arcs.json", base_path, payload=payload)

    def _parse_record(self, record_id: str, data: Mapping[str, object]) -> ArcDef:
        context = f"arc '{record_id}'"
        length = self._optional_number(data.get("estimated_length"), f"{context} estimated_length")
        return ArcDef(
            id=record_id,
            name=self._require_str(data.get("name"), f"{context} name"),
            description=self._optional_str(data.get("description"), f"{context} description") or "",
            estimated_length=int(length) if length is not None else None,
            prerequisites=self._str_list(data.get("prerequisites"), f"{context} prerequisites"),
            tags=self._str_list(data.get("tags"), f"{context} tags"),
        )
