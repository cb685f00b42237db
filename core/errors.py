# core/errors.py
"""Recoverable errors of the viewer.

None of these stop the application: the session records them in the
connection status and keeps showing the last good snapshot.
"""


class ViewerError(Exception):
    """Base class for errors surfaced through the status indicator."""


class NetworkError(ViewerError):
    """Transport failure or a non-2xx response from the backend."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(ViewerError):
    """Response body violates the snapshot schema or its invariants."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class LayoutError(ViewerError):
    """Layout could not be computed for an otherwise accepted snapshot."""
