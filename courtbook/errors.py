"""
Domain exceptions for the booking calendar.

Raised by the calendar helpers, the booking service and the database
layer, and converted to HTTP responses by a single handler in
`courtbook.main`.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class CourtBookError(Exception):
    """Base exception for all booking-domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class InvalidRangeError(CourtBookError):
    """Operating-hour bounds or a time value are nonsensical."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidPatternError(CourtBookError):
    """A recurrence pattern is underspecified or contradictory."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(CourtBookError):
    status_code = status.HTTP_404_NOT_FOUND


class CourtNotFoundError(NotFoundError):
    def __init__(self, court_id: str) -> None:
        super().__init__(
            f"Court {court_id} not found",
            details={"court_id": court_id},
        )


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(
            f"Booking {booking_id} not found",
            details={"booking_id": booking_id},
        )


class BookingConflictError(CourtBookError):
    """
    The requested interval overlaps an existing booking.

    Raised both by the advisory check in the booking service and by the
    database when its overlap trigger rejects a write.
    """

    status_code = status.HTTP_409_CONFLICT


class TransientWriteError(CourtBookError):
    """The database was busy; the caller should ask the user to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "The booking could not be saved, please retry") -> None:
        super().__init__(message)
