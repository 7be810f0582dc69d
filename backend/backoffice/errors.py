"""Error taxonomy shared by services and routers.

Routers translate these into HTTP status codes:
  ValidationFailure    -> 400 (operation never attempted)
  NotFound             -> 404
  OperationInFlight    -> 409
  RemoteOperationError -> 502 (whole operation failed at the platform)
"""

from __future__ import annotations


class ValidationFailure(ValueError):
    """Client-side validation failed before any platform call was made."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.problems = list(problems or [])

    def as_detail(self) -> dict[str, object]:
        return {"message": self.message, "problems": self.problems}


class CsvFormatError(ValidationFailure):
    """Uploaded CSV text is structurally malformed (one entry per bad line)."""


class NotFound(LookupError):
    pass


class OperationInFlight(RuntimeError):
    """The same operation is already running; the trigger stays disabled."""


class RemoteOperationError(RuntimeError):
    """The platform call failed as a whole (transport or backend exception)."""

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
