"""Failure values raised by plot operations.

Every error carries a message that can be shown to the requesting member as is.
"""

from __future__ import annotations


class PlotError(Exception):
    """Base class for all plot operation failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotOwnerError(PlotError):
    """Raised when the requester does not own the plot (or the plot is unknown to them)."""


class PlotNotFoundError(NotOwnerError):
    """Raised when no plot with the requested name exists."""


class ValidationError(PlotError, ValueError):
    """Raised for malformed coordinates or names before any side effect happens."""


class CollisionError(PlotError):
    """Raised when a perimeter would collide with plots of other owners."""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"The perimeter of your defined plot would collide with {count} other "
            f"plot{'s' if count > 1 else ''}!"
        )
        self.count = count


class ExternalApplicationError(PlotError):
    """Raised when the world tool answered a command with its error marker."""

    def __init__(self, response: str) -> None:
        super().__init__(response)
        self.response = response


class TransportError(PlotError):
    """Raised when the world tool could not be reached or authenticated."""


class StorageError(PlotError):
    """Raised when the region registry could not be read or written."""


class ConfirmationTimeoutError(PlotError):
    """Raised when a confirmation window elapsed without an answer."""


class ProfileLookupError(PlotError):
    """Raised for erroneous Mojang profile API responses."""

    def __init__(self, status_code: int, status: str, message: str) -> None:
        super().__init__(f"{status_code} ({status}): {message}")
        self.status_code = status_code
        self.status = status
