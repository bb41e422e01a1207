"""
Shared exception definitions for the game wheel.

Hierarchy:
- WheelError (base, carries the HTTP status used by the web layer)
  - InvalidArgument
  - NotFound
  - Conflict
  - EmptyList
  - StorageFailure
"""


class WheelError(Exception):
    """Base exception for all game wheel errors."""
    status_code: int = 500

    def __init__(self, message: str = '') -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidArgument(WheelError):
    """Bad or missing input, unknown list type, empty name."""
    status_code = 400


class NotFound(WheelError):
    """Unknown suggestion id or list name."""
    status_code = 404


class Conflict(WheelError):
    """Item already present in the target list."""
    status_code = 409


class EmptyList(WheelError):
    """A spin was attempted on a list with no entries."""
    status_code = 400


class StorageFailure(WheelError):
    """Underlying read or write of a JSON document failed."""
    status_code = 500


ERRORS_BY_STATUS = {
    400: InvalidArgument,
    404: NotFound,
    409: Conflict,
}
