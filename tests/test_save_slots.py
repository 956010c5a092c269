from __future__ import annotations

from pathlib import Path

import pytest

from storyweave.presentation.cli.save_slots import SaveSlotStore
from storyweave.services import SaveLoadError


def test_write_read_and_list(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path / "saves", slot_count=2)
    store.write_slot(2, {"metadata": {"game_time": 4}, "state": {}})

    assert store.read_slot(2)["metadata"] == {"game_time": 4}
    slots = store.list_slots()
    assert [(slot.slot, slot.exists) for slot in slots] == [(1, False), (2, True)]
    assert slots[1].metadata == {"game_time": 4}


def test_corrupt_slot_is_flagged(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path)
    (tmp_path / "slot_1.json").write_text("not json", encoding="utf-8")

    assert store.list_slots()[0].is_corrupt
    with pytest.raises(SaveLoadError, match="Could not read save file slot_1.json"):
        store.read_slot(1)


def test_empty_slot_and_delete(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path)
    with pytest.raises(SaveLoadError, match="Slot 3 is empty."):
        store.read_slot(3)

    store.write_slot(3, {})
    store.delete_slot(3)
    store.delete_slot(3)
    assert not (tmp_path / "slot_3.json").exists()


def test_slot_bounds(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path)
    with pytest.raises(ValueError, match="between 1 and 3"):
        store.write_slot(4, {})
