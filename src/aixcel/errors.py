"""
Error Taxonomy
==============
Exception types shared by the grid client.

None of these is fatal: a failed operation leaves the prior state in place
and the user is informed (see SheetSession.report_error).
"""
from __future__ import annotations


class GridError(Exception):
    """Base class for all grid client errors."""


class ValidationError(GridError):
    """Input that a pattern rule cannot interpret. Never leaves the pattern engine."""


class NetworkError(GridError):
    """A call to the backend failed or was rejected."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class ChannelError(GridError):
    """The push-update channel dropped or delivered something unreadable."""
