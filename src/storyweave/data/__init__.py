"""Data layer utilities for loading storylet definitions."""

from .errors import DataError, DataLoadError, DataValidationError, RecordNotFoundError
from .paths import get_definitions_path, get_repo_root

__all__ = [
    "DataError",
    "DataLoadError",
    "DataValidationError",
    "RecordNotFoundError",
    "get_definitions_path",
    "get_repo_root",
]
