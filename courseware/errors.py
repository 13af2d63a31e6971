"""Error taxonomy for the courseware API.

Every service raises one of these; the app maps them to a JSON body of the
form ``{"message": ...}`` using ``status_code``.
"""

from __future__ import annotations


class CoursewareError(Exception):
    """Base exception for all courseware errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CoursewareError):
    """Raised when a required input field is missing or malformed."""

    status_code = 400


class UnauthorizedError(CoursewareError):
    """Raised when the caller is unauthenticated or does not own the target record."""

    status_code = 401


class NotFoundError(CoursewareError):
    """Raised when a record is absent or soft-deleted."""

    status_code = 404


class PayloadTooLargeError(CoursewareError):
    status_code = 413


class IntegrityError(CoursewareError):
    """Raised when a dependency returns nothing where something must exist.

    The message is logged but never sent to the client.
    """

    status_code = 500
