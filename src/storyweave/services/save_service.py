"""Serialization helpers for manual save/load of the world state."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from storyweave.data.repositories import StoryletRepository
from storyweave.domain.state import WorldState
from storyweave.services.errors import SaveLoadError

SavePayload = Dict[str, Any]


@dataclass(slots=True)
class LoadedGame:
    state: WorldState
    current_storylet_id: str | None = None


class SaveService:
    """Converts world state to/from a validated, versioned payload."""

    SAVE_VERSION = 1

    def __init__(self, *, storylet_repo: StoryletRepository | None = None) -> None:
        self._storylet_repo = storylet_repo

    def serialize(self, state: WorldState, *, current_storylet_id: str | None = None) -> SavePayload:
        """Return a JSON-serializable payload for disk persistence."""
        return {
            "save_version": self.SAVE_VERSION,
            "metadata": {
                "current_storylet_id": current_storylet_id,
                "game_time": state.game_time,
                "completed_count": len(state.completed_storylets),
                "saved_at": datetime.now(timezone.utc).isoformat(),
            },
            "state": {
                "resources": dict(state.resources),
                "game_time": state.game_time,
                "discovered_clues": sorted(state.discovered_clues),
                "completed_storylets": sorted(state.completed_storylets),
                "relationships": dict(state.relationships),
                "flags": dict(state.flags),
                "variables": dict(state.variables),
                "current_arc_id": state.current_arc_id,
                "current_storylet_id": current_storylet_id,
            },
        }

    def deserialize(self, payload: Mapping[str, Any]) -> LoadedGame:
        """Rehydrate a WorldState from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        if payload.get("save_version") != self.SAVE_VERSION:
            raise SaveLoadError("Save format changed. Please start a new game.")
        state_payload = payload.get("state")
        if not isinstance(state_payload, Mapping):
            raise SaveLoadError("Save data is missing required sections.")

        completed = self._require_str_list(state_payload.get("completed_storylets"), "state.completed_storylets")
        current_storylet_id = self._coerce_optional_str(
            state_payload.get("current_storylet_id"), "state.current_storylet_id"
        )
        self._validate_storylet_ids(completed, "state.completed_storylets")
        if current_storylet_id is not None:
            self._validate_storylet_ids([current_storylet_id], "state.current_storylet_id")

        state = WorldState(
            resources=self._coerce_number_dict(state_payload.get("resources"), "state.resources"),
            game_time=self._require_number(state_payload.get("game_time"), "state.game_time"),
            discovered_clues=set(
                self._require_str_list(state_payload.get("discovered_clues"), "state.discovered_clues")
            ),
            completed_storylets=set(completed),
            relationships=self._coerce_number_dict(
                state_payload.get("relationships", {}), "state.relationships"
            ),
            flags=self._coerce_bool_dict(state_payload.get("flags", {}), "state.flags"),
            variables=dict(self._require_dict(state_payload.get("variables", {}), "state.variables")),
            current_arc_id=self._coerce_optional_str(state_payload.get("current_arc_id"), "state.current_arc_id"),
        )
        return LoadedGame(state=state, current_storylet_id=current_storylet_id)

    def _validate_storylet_ids(self, storylet_ids: List[str], context: str) -> None:
        if self._storylet_repo is None:
            return
        known = self._storylet_repo.ids()
        missing = [storylet_id for storylet_id in storylet_ids if storylet_id not in known]
        if missing:
            raise SaveLoadError(f"{context} references unknown storylets: {', '.join(missing)}")

    @staticmethod
    def _require_dict(value: Any, context: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        return value

    @staticmethod
    def _require_number(value: Any, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SaveLoadError(f"{context} must be a number.")
        return value

    @staticmethod
    def _coerce_optional_str(value: Any, context: str) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_str_list(value: Any, context: str) -> List[str]:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise SaveLoadError(f"{context} must be a list of strings.")
        return list(value)

    def _coerce_number_dict(self, value: Any, context: str) -> Dict[str, float]:
        mapping = self._require_dict(value, context)
        result: Dict[str, float] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise SaveLoadError(f"{context} keys must be strings.")
            result[key] = self._require_number(entry, f"{context}.{key}")
        return result

    def _coerce_bool_dict(self, value: Any, context: str) -> Dict[str, bool]:
        mapping = self._require_dict(value, context)
        result: Dict[str, bool] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise SaveLoadError(f"{context} keys must be strings.")
            if not isinstance(entry, bool):
                raise SaveLoadError(f"{context}.{key} must be a boolean.")
            result[key] = entry
        return result
