"""Custom exceptions for data loading, validation and repository writes."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when JSON files are missing or invalid."""


class DataValidationError(DataError):
    """Raised when storylet, arc, character or clue payloads are malformed."""


class RecordNotFoundError(DataError, KeyError):
    """Raised when a repository write targets an id it does not hold."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Record not found"
