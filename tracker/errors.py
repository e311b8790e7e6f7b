from __future__ import annotations

from typing import Any, Optional


class TrackerError(Exception):
    """Base class for errors surfaced to the user by the pages."""


class ValidationError(TrackerError, ValueError):
    """A required field is missing or invalid; nothing was written."""


class PersistenceError(TrackerError):
    """The active store rejected a read or write."""


class MigrationError(TrackerError):
    """
    Migration stopped partway. `report` holds what was already written
    to the cloud store; those records are left in place.
    """

    def __init__(self, message: str, report: Optional[Any] = None):
        super().__init__(message)
        self.report = report
