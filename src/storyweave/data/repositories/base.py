"""Base repository implementation for JSON-backed definition data."""
from __future__ import annotations

import logging
import uuid
from dataclasses import fields, replace
from pathlib import Path
from typing import Dict, Generic, Mapping, TypeVar

from storyweave.data import paths
from storyweave.data.errors import DataValidationError, RecordNotFoundError
from storyweave.data.json_loader import load_json

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RepositoryBase(Generic[T]):
    """Common caching, loading and async CRUD behavior for repositories.

    Records are loaded lazily, either from a JSON file under the definitions
    directory or from an in-memory ``payload``. The raw payload may be an
    object keyed by id or a list of objects carrying an ``id`` field.
    """

    record_label = "record"

    def __init__(
        self,
        filename: str,
        base_path: Path | str | None = None,
        *,
        payload: object | None = None,
    ) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._payload = payload
        self._definitions: Dict[str, T] | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        if self._payload is not None:
            return self._normalize_raw(self._payload, "payload")
        file_path = self._get_file_path()
        return self._normalize_raw(load_json(file_path), str(file_path))

    def _normalize_raw(self, raw: object, source: str) -> dict[str, object]:
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, list):
            keyed: dict[str, object] = {}
            for index, entry in enumerate(raw):
                entry_map = self._require_mapping(entry, f"{source}[{index}]")
                record_id = self._require_str(entry_map.get("id"), f"{source}[{index}] id")
                if record_id in keyed:
                    raise DataValidationError(f"Duplicate {self.record_label} id '{record_id}' in {source}")
                keyed[record_id] = entry_map
            return keyed
        raise DataValidationError(f"Expected top-level object or list in {source}")

    def _build(self, raw: dict[str, object]) -> Dict[str, T]:
        """Convert a raw dict into typed definitions."""
        definitions: Dict[str, T] = {}
        for record_id, record_payload in raw.items():
            if not isinstance(record_id, str):
                raise DataValidationError(f"{self.record_label.capitalize()} ids must be strings.")
            record_data = self._require_mapping(record_payload, f"{self.record_label} '{record_id}'")
            definitions[record_id] = self._parse_record(record_id, record_data)
        return definitions

    def _parse_record(self, record_id: str, data: Mapping[str, object]) -> T:
        raise NotImplementedError

    def _ensure_loaded(self) -> Dict[str, T]:
        if self._definitions is None:
            raw = self._load_raw()
            self._definitions = self._build(raw)
        return self._definitions

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        definitions = self._ensure_loaded()
        return [definitions[key] for key in sorted(definitions.keys())]

    def ids(self) -> frozenset[str]:
        return frozenset(self._ensure_loaded().keys())

    async def get(self, record_id: str) -> T | None:
        """Return a definition by id, or None when it is unknown."""
        return self._ensure_loaded().get(record_id)

    async def list_all(self) -> list[T]:
        return self.all()

    async def create(self, data: Mapping[str, object]) -> str:
        """Parse and store a new record, returning its id."""
        definitions = self._ensure_loaded()
        record_id = data.get("id")
        if record_id is None:
            record_id = uuid.uuid4().hex
        record_id = self._require_str(record_id, f"{self.record_label} id")
        if record_id in definitions:
            raise DataValidationError(f"{self.record_label.capitalize()} '{record_id}' already exists.")
        definitions[record_id] = self._parse_record(record_id, data)
        logger.debug("Created %s %s", self.record_label, record_id)
        return record_id

    async def update(self, record_id: str, patch: Mapping[str, object]) -> None:
        """Replace the named fields of an existing record."""
        definitions = self._ensure_loaded()
        current = definitions.get(record_id)
        if current is None:
            raise RecordNotFoundError(f"{self.record_label.capitalize()} with id {record_id} not found")
        known = {record_field.name for record_field in fields(current)}
        unknown = sorted(set(patch) - known)
        if unknown:
            raise DataValidationError(
                f"Unknown {self.record_label} fields: {', '.join(unknown)}"
            )
        if "id" in patch and patch["id"] != record_id:
            raise DataValidationError(f"{self.record_label.capitalize()} id cannot be changed.")
        definitions[record_id] = replace(current, **self._coerce_patch(record_id, patch))
        logger.debug("Updated %s %s fields=%s", self.record_label, record_id, sorted(patch))

    async def delete(self, record_id: str) -> None:
        definitions = self._ensure_loaded()
        if record_id not in definitions:
            raise RecordNotFoundError(f"{self.record_label.capitalize()} with id {record_id} not found")
        del definitions[record_id]
        logger.debug("Deleted %s %s", self.record_label, record_id)

    def _coerce_patch(self, record_id: str, patch: Mapping[str, object]) -> dict[str, object]:
        """Hook for subclasses that accept raw JSON values in patches."""
        return dict(patch)

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be a string.")
        return value

    @staticmethod
    def _optional_str(value: object, context: str) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be a string if provided.")
        return value

    @staticmethod
    def _optional_number(value: object, context: str) -> float | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationError(f"{context} must be a number if provided.")
        return value

    @staticmethod
    def _str_list(value: object, context: str) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise DataValidationError(f"{context} must be a list of strings if provided.")
        return list(value)
