"""Service-layer exceptions."""


class SaveLoadError(Exception):
    """Raised when world state save or load operations fail."""
