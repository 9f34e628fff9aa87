"""Error types raised by the Burako scoring core and repositories."""

from typing import Any, Optional


class ScoreError(Exception):
    """Base class for failures the bot reports back to the user."""


class ValidationError(ScoreError):
    """Input is structurally invalid (overlapping teams, malformed pair, bad document)."""

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.data = data


class NotFound(ScoreError):
    """A referenced game, pair, player or group does not exist."""


class NothingToUndo(ScoreError):
    """Undo requested on a game that only has its baseline create entry."""
