"""File-system helpers for sandbox save slots."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from storyweave.presentation.cli import config
from storyweave.services.errors import SaveLoadError


@dataclass(slots=True)
class SlotMetadata:
    """Describes the contents of a save slot for listing."""

    slot: int
    exists: bool
    metadata: Dict[str, Any] | None = None
    is_corrupt: bool = False


class SaveSlotStore:
    """Stores one JSON save payload per numbered slot."""

    def __init__(self, base_dir: Path | str | None = None, slot_count: int = 3) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else config.get_save_dir()
        self._slot_count = slot_count

    @property
    def slot_count(self) -> int:
        return self._slot_count

    def list_slots(self) -> List[SlotMetadata]:
        slots: List[SlotMetadata] = []
        for slot_index in range(1, self._slot_count + 1):
            path = self._slot_path(slot_index)
            if not path.exists():
                slots.append(SlotMetadata(slot=slot_index, exists=False))
                continue
            try:
                payload = self._read(path)
            except SaveLoadError:
                slots.append(SlotMetadata(slot=slot_index, exists=True, is_corrupt=True))
                continue
            metadata = payload.get("metadata")
            slots.append(
                SlotMetadata(
                    slot=slot_index,
                    exists=True,
                    metadata=metadata if isinstance(metadata, dict) else None,
                )
            )
        return slots

    def read_slot(self, slot: int) -> Dict[str, Any]:
        """Load the payload stored in the slot; missing or corrupt slots raise SaveLoadError."""
        self._validate_slot(slot)
        path = self._slot_path(slot)
        if not path.exists():
            raise SaveLoadError(f"Slot {slot} is empty.")
        return self._read(path)

    def write_slot(self, slot: int, payload: Dict[str, Any]) -> None:
        self._validate_slot(slot)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._slot_path(slot).write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def delete_slot(self, slot: int) -> None:
        self._validate_slot(slot)
        try:
            self._slot_path(slot).unlink()
        except FileNotFoundError:
            return

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SaveLoadError(f"Could not read save file {path.name}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SaveLoadError(f"Save file {path.name} must contain a JSON object.")
        return payload

    def _slot_path(self, slot: int) -> Path:
        return self._base_dir / f"slot_{slot}.json"

    def _validate_slot(self, slot: int) -> None:
        if not 1 <= slot <= self._slot_count:
            raise ValueError(f"Slot index must be between 1 and {self._slot_count}.")
