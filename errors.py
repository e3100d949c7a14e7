"""Error types shared by the launchpad state modules."""

from typing import Any, Dict, Optional


class LaunchpadError(Exception):
    """Base class for launchpad state errors."""

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(LaunchpadError):
    """A user-supplied field was rejected."""

    def __init__(self, message: str, *, field: str = "", context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, context=context)
        self.field = field


class BackupError(LaunchpadError):
    """Base class for rejected backup payloads."""


class InvalidBackup(BackupError):
    """The backup payload is not a JSON object or could not be decoded."""


class MissingData(BackupError):
    """The backup payload carries neither settings nor user data."""


class FetchFailure(LaunchpadError):
    """The remote catalog could not be retrieved or decoded."""


class StorageUnavailable(LaunchpadError):
    """The persistence medium could not be read or written."""
